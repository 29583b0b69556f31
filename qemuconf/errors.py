"""
Error classes raised by qemuconf.

Two families exist:

* ``ParseError``: a wire value could not be decoded (bad size suffix, unknown
  option key in strict mode, wrong scalar type).
* ``ValidationError``: the desired configuration breaks a rule. Every rule has
  its own subclass so callers can branch on the class instead of the message.
  The default message of each class is written to be shown to an end user
  as-is.
"""

from typing import Iterable
from typing import Optional


class QemuConfError(ValueError):
    """Base class for every error raised by qemuconf."""

    message = "invalid qemu configuration"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)


# ============================================================================
# Parse errors
# ============================================================================


class ParseError(QemuConfError):
    message = "wire value could not be parsed"


class SizeFormatError(ParseError):
    message = "size must be a number with an optional K, M, G or T suffix"


class RateFormatError(ParseError):
    message = "rate must be a decimal number"


class UnknownOptionError(ParseError):
    message = "unknown option key"


class WireTypeError(ParseError):
    message = "wire value has an unexpected type"


class ProductVersionError(ParseError):
    message = "product version must be in the form major[.minor[.patch]]"


# ============================================================================
# Validation errors
# ============================================================================


class ValidationError(QemuConfError):
    message = "invalid configuration"


# Slot identifiers


class SlotIdError(ValidationError):
    pass


class NetworkIdError(SlotIdError):
    message = "network interface ID must be in the range 0-31"


class PciIdError(SlotIdError):
    message = "pci id must be in the range 0-15"


class UsbIdError(SlotIdError):
    message = "usb id must be in the range 0-4"


class SerialIdError(SlotIdError):
    message = "serial id must be one of 0,1,2,3"


class DiskSlotError(SlotIdError):
    message = "invalid Disk ID"


# CPU


class CpuValidationError(ValidationError):
    pass


class CpuCoresRequiredError(CpuValidationError):
    message = "cores is required"


class CpuCoresLowerBoundError(CpuValidationError):
    message = "minimum value of QemuCpuCores is 1"


class CpuCoresUpperBoundError(CpuValidationError):
    message = "maximum value of QemuCpuCores is 128"


class CpuSocketsLowerBoundError(CpuValidationError):
    message = "minimum value of QemuCpuSockets is 1"


class CpuSocketsUpperBoundError(CpuValidationError):
    message = "maximum value of QemuCpuSockets is 4"


class CpuLimitError(CpuValidationError):
    message = "maximum value of CpuLimit is 128"


class CpuUnitsError(CpuValidationError):
    message = "maximum value of CpuUnits is 262144"


class CpuVirtualCoresError(CpuValidationError):
    message = "CpuVirtualCores exceeds cores * sockets"

    def __init__(self, maximum: int) -> None:
        self.maximum = maximum
        super().__init__(f"CpuVirtualCores may have a maximum of {maximum}")


class CpuTypeError(CpuValidationError):
    message = "invalid cpu type"

    def __init__(self, valid_types: Iterable[str]) -> None:
        self.valid_types = sorted(valid_types)
        super().__init__(
            "cpuType can only be one of the following values: "
            + ", ".join(self.valid_types),
        )


class TriBoolError(CpuValidationError):
    message = "invalid value for TriBool"


class CpuAffinityError(CpuValidationError):
    message = "cpu affinity may only contain non-negative integers"


# Memory


class MemoryValidationError(ValidationError):
    pass


class MemoryMinimumGreaterThanCapacityError(MemoryValidationError):
    message = "minimum capacity MiB cannot be greater than capacity MiB"


class MemoryNoCapacityError(MemoryValidationError):
    message = "no memory capacity specified"


class MemorySharesWithoutBallooningError(MemoryValidationError):
    message = "shares has no effect when capacity equals minimum capacity"


class MemoryCapacityMinimumError(MemoryValidationError):
    message = "memory capacity has a minimum of 1"


class MemoryCapacityMaximumError(MemoryValidationError):
    message = "memory capacity has a maximum of 4178944"


class MemoryBalloonMaximumError(MemoryValidationError):
    message = "memory balloon capacity has a maximum of 4178944"


class MemorySharesMaximumError(MemoryValidationError):
    message = "memory shares has a maximum of 50000"


# Disks


class DiskValidationError(ValidationError):
    pass


class DiskVariantError(DiskValidationError):
    message = "settings cdrom,cloudinit,disk,passthrough are mutually exclusive"


class DiskBusOptionError(DiskValidationError):
    message = "option is not supported on this disk bus"

    def __init__(self, option: str, bus: str) -> None:
        self.option = option
        self.bus = bus
        super().__init__(f"{option} is not supported on the {bus} bus")


class DiskAsyncIOError(DiskValidationError):
    message = (
        "asyncio can only be one of the following values: native,threads,io_uring"
    )


class DiskCacheError(DiskValidationError):
    message = (
        "cache can only be one of the following values: "
        "none,writethrough,writeback,unsafe,directsync"
    )


class DiskFormatError(DiskValidationError):
    message = (
        "format can only be one of the following values: "
        "cow,cloop,qcow,qcow2,qed,vmdk,raw"
    )


class DiskIopsBurstError(DiskValidationError):
    message = "burst may not be lower then 10 except for 0"


class DiskIopsConcurrentError(DiskValidationError):
    message = "concurrent may not be lower then 10 except for 0"


class DiskMbpsBurstError(DiskValidationError):
    message = "burst may not be lower then 1 except for 0"


class DiskMbpsConcurrentError(DiskValidationError):
    message = "concurrent may not be lower then 1 except for 0"


class DiskSerialCharacterError(DiskValidationError):
    message = (
        "serial may only contain the following characters: "
        "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ1234567890-_"
    )


class DiskSerialLengthError(DiskValidationError):
    message = "serial may only be 60 characters long"


class DiskWwnError(DiskValidationError):
    message = (
        "world wide name should be prefixed with 0x followed by 16 hexadecimal values"
    )


class DiskSizeError(DiskValidationError):
    message = "disk size must be greater then 4096"


class DiskStorageError(DiskValidationError):
    message = "storage may not be empty"


class DiskFileError(DiskValidationError):
    message = "file may not be empty"


class IsoFileError(DiskValidationError):
    message = "iso file may not be empty"


class IsoStorageError(DiskValidationError):
    message = "iso storage may not be empty"


class CloudInitDiskStorageError(DiskValidationError):
    message = "storage should not be empty"


class CloudInitDiskDuplicateError(DiskValidationError):
    message = "only one cloud init disk may exist"


# Network interfaces


class NetworkValidationError(ValidationError):
    pass


class NetworkBridgeRequiredError(NetworkValidationError):
    message = "bridge is required during creation"


class NetworkModelRequiredError(NetworkValidationError):
    message = "model is required during creation"


class NetworkModelError(NetworkValidationError):
    message = "invalid network model"

    def __init__(self, valid_models: Iterable[str]) -> None:
        self.valid_models = list(valid_models)
        super().__init__(
            "invalid network model, should be one of: " + ", ".join(self.valid_models),
        )


class NetworkMacError(NetworkValidationError):
    message = "mac address should be six pairs of hexadecimal values separated by ':'"


class MtuError(NetworkValidationError):
    message = "mtu must be in the range 576-65520"


class QemuMtuExclusiveError(NetworkValidationError):
    message = "inherit and value are mutually exclusive"


class MtuModelError(NetworkValidationError):
    message = "mtu is only supported by the virtio model"


class NetworkQueuesError(NetworkValidationError):
    message = "network queue has a maximum of 64"


class NetworkRateError(NetworkValidationError):
    message = "network rate limit has a maximum of 10240000"


class VlanError(NetworkValidationError):
    message = "vlan tag must be in the range 0-4095"


# Cloud-init


class CloudInitValidationError(ValidationError):
    pass


class CloudInitUpgradePackagesError(CloudInitValidationError):
    message = "upgradePackages is only available in version 8 and above"


class SnippetPathEmptyError(CloudInitValidationError):
    message = "cloudInitSnippetPath may not be empty"


class SnippetPathRelativeError(CloudInitValidationError):
    message = "cloudInitSnippetPath must be an relative path"


class SnippetPathLengthError(CloudInitValidationError):
    message = "cloudInitSnippetPath may not be longer than 256 characters"


class SnippetPathCharacterError(CloudInitValidationError):
    message = (
        "cloudInitSnippetPath may ony contain the following characters: "
        "[a-zA-Z0-9_ -/.]"
    )


class SnippetPathInvalidError(CloudInitValidationError):
    message = "cloudInitSnippetPath must be a valid unix path"


class IPv4DhcpAddressError(CloudInitValidationError):
    message = "ipv4 dhcp is mutually exclusive with address"


class IPv4DhcpGatewayError(CloudInitValidationError):
    message = "ipv4 dhcp is mutually exclusive with gateway"


class IPv6DhcpAddressError(CloudInitValidationError):
    message = "ipv6 dhcp is mutually exclusive with address"


class IPv6DhcpGatewayError(CloudInitValidationError):
    message = "ipv6 dhcp is mutually exclusive with gateway"


class IPv6DhcpSlaacError(CloudInitValidationError):
    message = "ipv6 dhcp is mutually exclusive with slaac"


class IPv6SlaacAddressError(CloudInitValidationError):
    message = "ipv6 slaac is mutually exclusive with address"


class IPv6SlaacGatewayError(CloudInitValidationError):
    message = "ipv6 slaac is mutually exclusive with gateway"


class IPv4AddressError(CloudInitValidationError):
    message = "ipv4Address is not a valid ipv4 address"


class IPv4CidrError(CloudInitValidationError):
    message = "ipv4CIDR is not a valid ipv4 address"


class IPv6AddressError(CloudInitValidationError):
    message = "ipv6Address is not a valid ipv6 address"


class IPv6CidrError(CloudInitValidationError):
    message = "ipv6CIDR is not a valid ipv6 address"


class NameServerError(CloudInitValidationError):
    message = "nameserver is not a valid ip address"


# Resource mappings, shared by PCI and USB


class MappingIdError(ValidationError):
    suffix = " mapping id is invalid"

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(kind + self.suffix)


class MappingIdTooShortError(MappingIdError):
    suffix = " mapping id is too short"


class MappingIdTooLongError(MappingIdError):
    suffix = " mapping id is too long"


class MappingIdStartError(MappingIdError):
    suffix = " mapping id must start with a letter"


class MappingIdCharacterError(MappingIdError):
    suffix = " mapping id should match the following regex: '^\\w(\\w|\\d|_|-){1,127}$'"


# PCI devices


class PciValidationError(ValidationError):
    pass


class PciKindError(PciValidationError):
    message = "mapping and raw are mutually exclusive"


class PciMappedIdRequiredError(PciValidationError):
    message = "mapped id is required during creation"


class PciRawIdRequiredError(PciValidationError):
    message = "raw id is required during creation"


class PciVendorIdError(PciValidationError):
    message = "vendor id must be in the range 0x0000-0xFFFF"


class PciDeviceIdError(PciValidationError):
    message = "device id must be in the range 0x0000-0xFFFF"


class PciSubVendorIdError(PciValidationError):
    message = "sub vendor id must be in the range 0x0000-0xFFFF"


class PciSubDeviceIdError(PciValidationError):
    message = "sub device id must be in the range 0x0000-0xFFFF"


class PciAddressMissingBusError(PciValidationError):
    message = "pci id missing bus identifier"


class PciAddressMissingDeviceError(PciValidationError):
    message = "pci id missing device identifier"


class PciAddressDomainLengthError(PciValidationError):
    message = "pci id domain identifier should be 4 characters long"


class PciAddressDomainError(PciValidationError):
    message = "pci id invalid domain identifier"


class PciAddressBusLengthError(PciValidationError):
    message = "pci id bus identifier should be 2 characters long"


class PciAddressBusError(PciValidationError):
    message = "pci id invalid bus identifier"


class PciAddressDeviceLengthError(PciValidationError):
    message = "pci id device identifier should be 2 characters long"


class PciAddressDeviceError(PciValidationError):
    message = "pci id invalid device identifier"


class PciAddressFunctionError(PciValidationError):
    message = "pci id invalid function identifier"


class PciAddressFunctionRangeError(PciValidationError):
    message = "pci id function identifier should be in the range 0-7"


# USB devices


class UsbValidationError(ValidationError):
    pass


class UsbKindError(UsbValidationError):
    message = "usb device, usb mapped, usb port, and usb spice are mutually exclusive"


class UsbDeviceIdRequiredError(UsbValidationError):
    message = "usb device id is required during creation"


class UsbMappedIdRequiredError(UsbValidationError):
    message = "usb mapped id is required during creation"


class UsbPortIdRequiredError(UsbValidationError):
    message = "usb port id is required during creation"


class UsbDeviceIdError(UsbValidationError):
    message = "invalid usb device-id"


class UsbVendorIdError(UsbValidationError):
    message = "usb vendor-id isn't valid hexadecimal"


class UsbProductIdError(UsbValidationError):
    message = "usb product-id isn't valid hexadecimal"


class UsbPortIdError(UsbValidationError):
    message = "invalid usb port id"


# Serial ports


class SerialValidationError(ValidationError):
    pass


class SerialExclusiveError(SerialValidationError):
    message = "path and socket are mutually exclusive"


class SerialEmptyError(SerialValidationError):
    message = "path or socket must be set"


class SerialPathError(SerialValidationError):
    message = "path must start with /dev/"


# Tags


class TagValidationError(ValidationError):
    pass


class TagEmptyError(TagValidationError):
    message = "tag may not be empty"


class TagLengthError(TagValidationError):
    message = "tag may only be 124 characters"


class TagCharacterError(TagValidationError):
    message = (
        "tag may not start with -. and may only include the following characters: "
        "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-._"
    )


class TagDuplicateError(TagValidationError):
    message = "duplicate tag found"


# TPM, RNG, guest agent


class TpmStorageError(ValidationError):
    message = "storage is required"


class TpmVersionRequiredError(ValidationError):
    message = "version is required"


class TpmVersionError(ValidationError):
    message = "enum TmpVersion should be one of: v1.2, v2.0"


class RngSourceRequiredError(ValidationError):
    message = "source must be set on creation"


class RngSourceError(ValidationError):
    message = "invalid value for EntropySource"


class AgentTypeError(ValidationError):
    message = 'invalid qemu guest agent type, should one of [isa, virtio, ""]'


# General fields


class PoolNameEmptyError(ValidationError):
    message = "PoolName cannot be empty"


class PoolNameLengthError(ValidationError):
    message = "PoolName may not be longer than 1024 characters"


class PoolNameCharacterError(ValidationError):
    message = (
        "PoolName may only contain the following characters: "
        "a-z, A-Z, 0-9, hyphen (-), and underscore (_)"
    )
