from typing import List, Optional

from pydantic import BaseModel, Field

WORKDIR_LOG_NAME = "workdir"


class LogEntry(BaseModel):
    name: str = ""
    href: str = ""


class TestPlanRecord(BaseModel):
    """A tmt plan as listed in results.xml (one `testsuite` element)."""
    __test__ = False  # keep pytest from collecting this as a test class

    name: str
    logs: List[LogEntry] = Field(default_factory=list)

    @property
    def workdir(self) -> Optional[str]:
        """Href of the first `workdir` log, or None when it is missing or empty."""
        for entry in self.logs:
            if entry.name == WORKDIR_LOG_NAME:
                return entry.href or None
        return None
