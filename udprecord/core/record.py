# core/record.py

from dataclasses import dataclass

MAX_ID = 0xFFFFFFFF


@dataclass(frozen=True)
class Record:
    """
    One unit of data exchanged between peers.

    - id: unsigned 32-bit integer, uniqueness is up to the application
    - text: any unicode string (the wire budget is checked at encode time)
    """

    id: int
    text: str

    def __post_init__(self):
        if isinstance(self.id, bool) or not isinstance(self.id, int):
            raise ValueError(f"Record id must be an int, got {type(self.id).__name__}")
        if not 0 <= self.id <= MAX_ID:
            raise ValueError(f"Record id out of range: {self.id}")
        if not isinstance(self.text, str):
            raise ValueError(f"Record text must be a str, got {type(self.text).__name__}")
        try:
            self.text.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ValueError(f"Record text is not encodable as UTF-8: {e.reason} at {e.start}") from None

    def __str__(self) -> str:
        return f"[{self.id} : {self.text}]"
