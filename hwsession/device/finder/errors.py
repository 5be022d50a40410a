class DeviceNotFoundError(RuntimeError):
    """Raised when no matching device could be found."""
    pass


class MultipleDevicesError(RuntimeError):
    """Raised when more than one matching device is found."""
    def __init__(self, message, devices):
        super().__init__(message)
        self.devices = devices  # list[DeviceInfo] but avoid circular imports
