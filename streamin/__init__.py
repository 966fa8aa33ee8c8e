"""
streamin

Converts media files into MPEG-DASH packages by running ffmpeg and Bento4
as a sequence of supervised stages, and reports their progress over HTTP.
"""

__version__ = "0.1.0"
