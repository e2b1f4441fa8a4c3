from dataclasses import dataclass
from typing import Optional


@dataclass
class Credential:
    name: str
    login: str
    password: str
    credential_id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""

    def label(self) -> str:
        return f"{self.name} ({self.login})"


@dataclass
class CaptureResult:
    ok: bool
    image: Optional[bytes] = None
    error: str = ""


@dataclass
class CaptureOutcome:
    credential: Credential
    result: CaptureResult
    delivered: bool = False

    @property
    def kind(self) -> str:
        return "photo" if self.result.ok else "failure"
