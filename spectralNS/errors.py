class ConfigurationError(ValueError):
    """Bad run parameters or an unusable input file.

    Raised before any simulation state is touched, so a caller can report
    the message and exit without cleanup.
    """
