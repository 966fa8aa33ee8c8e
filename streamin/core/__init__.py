# Core modules for streamin: settings, shared-state locks, session registry
