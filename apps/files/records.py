from dataclasses import dataclass, asdict
from datetime import datetime
from typing import List, Optional


@dataclass
class FileRecord:
    """
    Metadata persisted by a tracking backend for one logical path.
    remote_ids is the exact order in which decrypted segments are concatenated.
    """
    path: str
    remote_ids: List[str]
    is_chunked: bool = False
    is_encrypted: bool = False
    original_size: int = 0
    mime_type: Optional[str] = None
    file_name: Optional[str] = None
    caption: Optional[str] = None
    checksum: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.path:
            raise ValueError("path cannot be empty")
        self.remote_ids = [str(remote_id) for remote_id in self.remote_ids]
        if not self.remote_ids:
            raise ValueError(f"A tracked record needs at least one remote id (path: {self.path})")
        self.is_chunked = bool(self.is_chunked) or len(self.remote_ids) > 1

    @property
    def file_id(self) -> str:
        return self.remote_ids[0]

    @property
    def chunk_count(self) -> int:
        return len(self.remote_ids)

    def to_dict(self) -> dict:
        data = asdict(self)
        for name in ("created_at", "updated_at"):
            if data[name] is not None:
                data[name] = data[name].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "FileRecord":
        values = dict(data)
        for name in ("created_at", "updated_at"):
            if values.get(name):
                values[name] = datetime.fromisoformat(values[name])
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in values.items() if k in known})
