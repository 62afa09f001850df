class StreamdeplException(Exception):
    """Exception raised for bad input or configuration in streamdepl"""

    pass
