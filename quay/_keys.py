from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Keys:
    prefix: str = "quay"

    def __post_init__(self) -> None:
        if not isinstance(self.prefix, str) or not self.prefix.strip():
            raise ValueError("prefix must be a non-blank string")

    @property
    def pending(self) -> str:
        return f"{self.prefix}:queue:pending"

    @property
    def delayed(self) -> str:
        return f"{self.prefix}:queue:delayed"

    @property
    def processing(self) -> str:
        return f"{self.prefix}:queue:processing"

    @property
    def completed(self) -> str:
        return f"{self.prefix}:queue:completed"

    @property
    def failed(self) -> str:
        return f"{self.prefix}:queue:failed"

    def job(self, job_id: str) -> str:
        return f"{self.prefix}:job:{job_id}"
