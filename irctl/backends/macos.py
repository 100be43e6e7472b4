"""CoreFoundation preference and IOKit registry backend built on ctypes.

Every CoreFoundation reference and IOKit object obtained here is wrapped in a
scoped handle that releases it exactly once, whether the caller finishes
normally or bails out on an error.
"""

from __future__ import annotations

import ctypes
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from types import TracebackType

from irctl.core.errors import (
    BackendUnavailableError,
    EnumerationError,
    HIDEnumerationError,
    PerServiceError,
)
from irctl.core.model import OpaqueValue, PreferenceKey

_CF_PATH = "/System/Library/Frameworks/CoreFoundation.framework/CoreFoundation"
_IOKIT_PATH = "/System/Library/Frameworks/IOKit.framework/IOKit"

_UTF8 = 0x08000100
_KERN_SUCCESS = 0
_MAIN_PORT_DEFAULT = 0
_IO_NAME_SIZE = 128
_HID_OPTION_NONE = 0

LOGGER = logging.getLogger(__name__)


def _kr(code: int) -> str:
    return f"{code & 0xFFFFFFFF:#x}"


class Frameworks:
    """Loaded CoreFoundation and IOKit libraries with their prototypes."""

    def __init__(self) -> None:
        try:
            self.cf = ctypes.cdll.LoadLibrary(_CF_PATH)
            self.iokit = ctypes.cdll.LoadLibrary(_IOKIT_PATH)
        except OSError as exc:
            raise BackendUnavailableError(
                f"CoreFoundation/IOKit frameworks are not available on this host: {exc}"
            ) from exc
        self._setup_prototypes()

        cf = self.cf
        self.true_ref = ctypes.c_void_p.in_dll(cf, "kCFBooleanTrue").value
        self.false_ref = ctypes.c_void_p.in_dll(cf, "kCFBooleanFalse").value
        self.users = {
            "any": ctypes.c_void_p.in_dll(cf, "kCFPreferencesAnyUser").value,
            "current": ctypes.c_void_p.in_dll(cf, "kCFPreferencesCurrentUser").value,
        }
        self.hosts = {
            "any": ctypes.c_void_p.in_dll(cf, "kCFPreferencesAnyHost").value,
            "current": ctypes.c_void_p.in_dll(cf, "kCFPreferencesCurrentHost").value,
        }
        self.boolean_type_id = cf.CFBooleanGetTypeID()

    def _setup_prototypes(self) -> None:
        cf = self.cf
        iokit = self.iokit

        cf.CFRelease.argtypes = [ctypes.c_void_p]
        cf.CFRelease.restype = None

        cf.CFStringCreateWithCString.argtypes = [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_uint32]
        cf.CFStringCreateWithCString.restype = ctypes.c_void_p

        cf.CFStringGetLength.argtypes = [ctypes.c_void_p]
        cf.CFStringGetLength.restype = ctypes.c_long

        cf.CFStringGetMaximumSizeForEncoding.argtypes = [ctypes.c_long, ctypes.c_uint32]
        cf.CFStringGetMaximumSizeForEncoding.restype = ctypes.c_long

        cf.CFStringGetCString.argtypes = [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_long, ctypes.c_uint32]
        cf.CFStringGetCString.restype = ctypes.c_bool

        cf.CFCopyDescription.argtypes = [ctypes.c_void_p]
        cf.CFCopyDescription.restype = ctypes.c_void_p

        cf.CFCopyTypeIDDescription.argtypes = [ctypes.c_ulong]
        cf.CFCopyTypeIDDescription.restype = ctypes.c_void_p

        cf.CFGetTypeID.argtypes = [ctypes.c_void_p]
        cf.CFGetTypeID.restype = ctypes.c_ulong

        cf.CFBooleanGetTypeID.argtypes = []
        cf.CFBooleanGetTypeID.restype = ctypes.c_ulong

        cf.CFBooleanGetValue.argtypes = [ctypes.c_void_p]
        cf.CFBooleanGetValue.restype = ctypes.c_bool

        cf.CFSetGetCount.argtypes = [ctypes.c_void_p]
        cf.CFSetGetCount.restype = ctypes.c_long

        cf.CFSetGetValues.argtypes = [ctypes.c_void_p, ctypes.POINTER(ctypes.c_void_p)]
        cf.CFSetGetValues.restype = None

        cf.CFPreferencesCopyValue.argtypes = [ctypes.c_void_p] * 4
        cf.CFPreferencesCopyValue.restype = ctypes.c_void_p

        cf.CFPreferencesSetValue.argtypes = [ctypes.c_void_p] * 5
        cf.CFPreferencesSetValue.restype = None

        cf.CFPreferencesSynchronize.argtypes = [ctypes.c_void_p] * 3
        cf.CFPreferencesSynchronize.restype = ctypes.c_bool

        iokit.IOHIDManagerCreate.argtypes = [ctypes.c_void_p, ctypes.c_uint32]
        iokit.IOHIDManagerCreate.restype = ctypes.c_void_p

        iokit.IOHIDManagerSetDeviceMatching.argtypes = [ctypes.c_void_p, ctypes.c_void_p]
        iokit.IOHIDManagerSetDeviceMatching.restype = None

        iokit.IOHIDManagerCopyDevices.argtypes = [ctypes.c_void_p]
        iokit.IOHIDManagerCopyDevices.restype = ctypes.c_void_p

        iokit.IOHIDDeviceGetProperty.argtypes = [ctypes.c_void_p, ctypes.c_void_p]
        iokit.IOHIDDeviceGetProperty.restype = ctypes.c_void_p

        iokit.IOServiceMatching.argtypes = [ctypes.c_char_p]
        iokit.IOServiceMatching.restype = ctypes.c_void_p

        iokit.IOServiceGetMatchingServices.argtypes = [
            ctypes.c_uint, ctypes.c_void_p, ctypes.POINTER(ctypes.c_uint)
        ]
        iokit.IOServiceGetMatchingServices.restype = ctypes.c_int

        iokit.IOIteratorNext.argtypes = [ctypes.c_uint]
        iokit.IOIteratorNext.restype = ctypes.c_uint

        iokit.IOObjectRelease.argtypes = [ctypes.c_uint]
        iokit.IOObjectRelease.restype = ctypes.c_int

        iokit.IORegistryEntryGetName.argtypes = [ctypes.c_uint, ctypes.c_char_p]
        iokit.IORegistryEntryGetName.restype = ctypes.c_int

        iokit.IORegistryEntryCreateCFProperty.argtypes = [
            ctypes.c_uint, ctypes.c_void_p, ctypes.c_void_p, ctypes.c_uint32
        ]
        iokit.IORegistryEntryCreateCFProperty.restype = ctypes.c_void_p

        iokit.IORegistryEntrySetCFProperty.argtypes = [ctypes.c_uint, ctypes.c_void_p, ctypes.c_void_p]
        iokit.IORegistryEntrySetCFProperty.restype = ctypes.c_int

    # -- CoreFoundation value helpers ---------------------------------------

    def string(self, text: str) -> ScopedCFType:
        return ScopedCFType(self, self.cf.CFStringCreateWithCString(None, text.encode("utf-8"), _UTF8))

    def boolean(self, value: bool) -> int:
        return self.true_ref if value else self.false_ref

    def string_value(self, ref: int) -> str:
        cf = self.cf
        size = cf.CFStringGetMaximumSizeForEncoding(cf.CFStringGetLength(ref), _UTF8) + 1
        buf = ctypes.create_string_buffer(size)
        if not cf.CFStringGetCString(ref, buf, size, _UTF8):
            return "<undecodable>"
        return buf.value.decode("utf-8")

    def describe(self, ref: int) -> str:
        with ScopedCFType(self, self.cf.CFCopyDescription(ref)) as description:
            if not description:
                return "<no description>"
            return self.string_value(description.get())

    def to_python(self, ref: int | None) -> bool | OpaqueValue | None:
        if not ref:
            return None
        type_id = self.cf.CFGetTypeID(ref)
        if type_id == self.boolean_type_id:
            return bool(self.cf.CFBooleanGetValue(ref))
        with ScopedCFType(self, self.cf.CFCopyTypeIDDescription(type_id)) as type_name:
            return OpaqueValue(type_name=self.string_value(type_name.get()) if type_name else str(type_id))


class _ScopedHandle:
    """Single-owner wrapper; releases its reference once, never copies."""

    def __init__(self, frameworks: Frameworks, ref: int | None) -> None:
        self._frameworks = frameworks
        self._ref = ref or None

    def get(self) -> int:
        if self._ref is None:
            raise ValueError(f"{type(self).__name__} has no live reference")
        return self._ref

    def __bool__(self) -> bool:
        return self._ref is not None

    def release(self) -> None:
        if self._ref is not None:
            ref, self._ref = self._ref, None
            self._free(ref)

    def _free(self, ref: int) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    def __del__(self) -> None:
        try:
            self.release()
        except Exception:
            LOGGER.debug("Failed to release %s during finalization", type(self).__name__)

    def __copy__(self):
        raise TypeError(f"{type(self).__name__} cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError(f"{type(self).__name__} cannot be copied")


class ScopedCFType(_ScopedHandle):
    def _free(self, ref: int) -> None:
        self._frameworks.cf.CFRelease(ref)


class ScopedIOObject(_ScopedHandle):
    def _free(self, ref: int) -> None:
        self._frameworks.iokit.IOObjectRelease(ref)


# -- Preferences ------------------------------------------------------------


class CFPreferenceStore:
    def __init__(self, frameworks: Frameworks) -> None:
        self._fw = frameworks

    def _scope(self, key: PreferenceKey) -> tuple[int, int]:
        return self._fw.users[key.user], self._fw.hosts[key.host]

    def copy_value(self, key: PreferenceKey) -> bool | OpaqueValue | None:
        cf = self._fw.cf
        user, host = self._scope(key)
        with self._fw.string(key.key) as name, self._fw.string(key.domain) as domain:
            with ScopedCFType(
                self._fw, cf.CFPreferencesCopyValue(name.get(), domain.get(), user, host)
            ) as value:
                return self._fw.to_python(value.get() if value else None)

    def set_value(self, key: PreferenceKey, value: bool) -> None:
        user, host = self._scope(key)
        with self._fw.string(key.key) as name, self._fw.string(key.domain) as domain:
            self._fw.cf.CFPreferencesSetValue(
                name.get(), self._fw.boolean(value), domain.get(), user, host
            )

    def synchronize(self, key: PreferenceKey) -> bool:
        user, host = self._scope(key)
        with self._fw.string(key.domain) as domain:
            ok = bool(self._fw.cf.CFPreferencesSynchronize(domain.get(), user, host))
        if not ok:
            LOGGER.error("Failed to CFPreferencesSynchronize")
        return ok


# -- HID devices ------------------------------------------------------------


class IOHIDDevice:
    """Borrowed device reference, valid while its owning device set is alive."""

    def __init__(self, frameworks: Frameworks, ref: int) -> None:
        self._fw = frameworks
        self._ref = ref

    def get_property(self, name: str) -> bool | OpaqueValue | None:
        with self._fw.string(name) as key:
            return self._fw.to_python(self._fw.iokit.IOHIDDeviceGetProperty(self._ref, key.get()))

    def describe(self) -> str:
        return self._fw.describe(self._ref)


class IOHIDDeviceSource:
    def __init__(self, frameworks: Frameworks) -> None:
        self._fw = frameworks

    @contextmanager
    def copy_devices(self) -> Iterator[list[IOHIDDevice]]:
        iokit = self._fw.iokit
        with ScopedCFType(self._fw, iokit.IOHIDManagerCreate(None, _HID_OPTION_NONE)) as manager:
            if not manager:
                raise HIDEnumerationError("Failed to IOHIDManagerCreate")
            iokit.IOHIDManagerSetDeviceMatching(manager.get(), None)
            with ScopedCFType(self._fw, iokit.IOHIDManagerCopyDevices(manager.get())) as devices:
                if not devices:
                    raise HIDEnumerationError("Failed to IOHIDManagerCopyDevices")
                count = self._fw.cf.CFSetGetCount(devices.get())
                values = (ctypes.c_void_p * count)()
                self._fw.cf.CFSetGetValues(devices.get(), values)
                yield [IOHIDDevice(self._fw, ref) for ref in values if ref]


# -- Registry services ------------------------------------------------------


class IORegistryService(ScopedIOObject):
    def name(self) -> str:
        buf = ctypes.create_string_buffer(_IO_NAME_SIZE)
        kr = self._frameworks.iokit.IORegistryEntryGetName(self.get(), buf)
        if kr != _KERN_SUCCESS:
            raise PerServiceError(f"Failed to IORegistryEntryGetName: {_kr(kr)}")
        return buf.value.decode("utf-8", errors="replace")

    def get_property(self, name: str) -> bool | OpaqueValue | None:
        fw = self._frameworks
        with fw.string(name) as key:
            with ScopedCFType(
                fw, fw.iokit.IORegistryEntryCreateCFProperty(self.get(), key.get(), None, 0)
            ) as value:
                return fw.to_python(value.get() if value else None)

    def set_property(self, name: str, value: bool) -> None:
        fw = self._frameworks
        with fw.string(name) as key:
            kr = fw.iokit.IORegistryEntrySetCFProperty(self.get(), key.get(), fw.boolean(value))
        if kr != _KERN_SUCCESS:
            raise PerServiceError(f"Failed to IORegistryEntrySetCFProperty: {_kr(kr)}")


class IOServiceIterator(ScopedIOObject):
    def next_service(self) -> IORegistryService | None:
        if not self:
            return None
        entry = self._frameworks.iokit.IOIteratorNext(self.get())
        if not entry:
            return None
        return IORegistryService(self._frameworks, entry)


class IORegistry:
    def __init__(self, frameworks: Frameworks) -> None:
        self._fw = frameworks

    def matching_services(self, class_name: str) -> IOServiceIterator:
        iokit = self._fw.iokit
        matching = iokit.IOServiceMatching(class_name.encode("utf-8"))
        if not matching:
            raise EnumerationError(f"Failed to IOServiceMatching for {class_name}")

        # IOServiceGetMatchingServices consumes the matching dictionary.
        iterator = ctypes.c_uint()
        kr = iokit.IOServiceGetMatchingServices(_MAIN_PORT_DEFAULT, matching, ctypes.byref(iterator))
        if kr != _KERN_SUCCESS:
            raise EnumerationError(f"Failed to IOServiceGetMatchingServices: {_kr(kr)}")
        return IOServiceIterator(self._fw, iterator.value)


class MacOSBackend:
    def __init__(self, frameworks: Frameworks | None = None) -> None:
        frameworks = frameworks or Frameworks()
        self.preferences = CFPreferenceStore(frameworks)
        self.hid = IOHIDDeviceSource(frameworks)
        self.registry = IORegistry(frameworks)
