from dataclasses import dataclass


@dataclass(frozen=True)
class SerialInterface:
    path: str = ""
    socket: bool = False
    delete: bool = False
