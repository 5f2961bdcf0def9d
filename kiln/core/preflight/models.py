from typing import List, Literal

from pydantic import BaseModel, Field


Level = Literal["WARN", "BLOCK"]
Decision = Literal["ALLOW", "WARN", "BLOCK"]


class PreflightFinding(BaseModel):
    code: str
    level: Level
    message: str


class PreflightReport(BaseModel):
    recipe: str
    decision: Decision = "ALLOW"
    findings: List[PreflightFinding] = Field(default_factory=list)

    def add(self, code: str, level: Level, message: str) -> None:
        self.findings.append(PreflightFinding(code=code, level=level, message=message))
        if level == "BLOCK":
            self.decision = "BLOCK"
        elif self.decision == "ALLOW":
            self.decision = "WARN"

    def reasons(self, level: Level = "BLOCK") -> List[str]:
        return [f"{f.code}: {f.message}" for f in self.findings if f.level == level]
