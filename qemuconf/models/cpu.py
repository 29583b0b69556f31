from dataclasses import dataclass
from enum import IntEnum
from typing import List
from typing import Optional


class TriBool(IntEnum):
    """
    Three state flag. ``NONE`` removes the flag from the VM, a field left at
    ``None`` keeps whatever the VM already has.
    """

    FALSE = -1
    NONE = 0
    TRUE = 1


@dataclass(frozen=True)
class CpuFlags:
    aes: Optional[TriBool] = None
    amd_no_ssb: Optional[TriBool] = None
    amd_ssbd: Optional[TriBool] = None
    hv_evmcs: Optional[TriBool] = None
    hv_tlbflush: Optional[TriBool] = None
    ibpb: Optional[TriBool] = None
    md_clear: Optional[TriBool] = None
    pcid: Optional[TriBool] = None
    pdpe1gb: Optional[TriBool] = None
    ssbd: Optional[TriBool] = None
    spec_ctrl: Optional[TriBool] = None
    virt_ssbd: Optional[TriBool] = None


@dataclass(frozen=True)
class Cpu:
    affinity: Optional[List[int]] = None
    cores: Optional[int] = None
    flags: Optional[CpuFlags] = None
    limit: Optional[int] = None
    numa: Optional[bool] = None
    sockets: Optional[int] = None
    type: Optional[str] = None
    units: Optional[int] = None
    virtual_cores: Optional[int] = None
