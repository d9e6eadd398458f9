from typing import Optional


class EditorError(RuntimeError):
    pass


class ApiError(EditorError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is None:
            return base
        return f"{base} (HTTP {self.status})"


class UnknownRecordError(KeyError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(record_id)
        self.kind = kind
        self.record_id = record_id

    def __str__(self) -> str:
        return f"unknown {self.kind}: {self.record_id}"
