"""
streamin services package.

Media probing, directory listing and DASH session assembly.
"""
