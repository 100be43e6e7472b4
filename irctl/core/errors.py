"""Domain-specific errors for irctl."""


class IrctlError(Exception):
    """Base error for irctl."""


class ConfigError(IrctlError):
    """Raised when the user settings file cannot be read or is invalid."""


class ProfileValidationError(ConfigError):
    """Raised when the packaged controller profile does not conform to schema."""


class BackendUnavailableError(IrctlError):
    """Raised when the OS frameworks backing irctl cannot be loaded."""


class CapabilityAbsentError(IrctlError):
    """Raised when no HID device exposes the remote-control capability."""


class EnumerationError(IrctlError):
    """Raised when a registry or HID match query cannot be built or executed."""


class HIDEnumerationError(EnumerationError):
    """Raised when the HID manager cannot copy the attached device set."""


class NoDeviceFoundError(IrctlError):
    """Raised when the registry query succeeds but matches no service."""


class TypeMismatchError(IrctlError):
    """Raised when the stored preference value is absent or not a boolean."""


class ElevationRequiredError(IrctlError, PermissionError):
    """Raised when a write is attempted without root privileges."""


class PersistError(IrctlError):
    """Raised when the preference store fails to synchronize to disk."""


class PerServiceError(IrctlError):
    """Raised when reading or writing a single registry service fails."""
