"""Models for results reported to TestLink."""

from enum import Enum

from pydantic import BaseModel, Field


class ExecutionStatus(str, Enum):
    """TestLink execution status codes."""

    PASSED = "p"
    FAILED = "f"


class StepResult(BaseModel):
    """Result of one step of a case mapped to a suite."""

    step_number: int = Field(..., ge=1, description="1-based step number")
    result: ExecutionStatus = Field(..., description="Step status")
    notes: str = Field(default="", description="Failure trace or empty")


class TestProject(BaseModel):
    """A TestLink project as listed by getProjects."""

    __test__ = False

    id: int = Field(..., description="TestLink project id")
    prefix: str = Field(..., description="Case id prefix of the project")
    name: str = Field(default="", description="Project name")


class RunContext(BaseModel):
    """Plan, build and project active for the current run."""

    testplanid: int | None = Field(default=None, description="Active test plan")
    buildid: int | None = Field(default=None, description="Active build")
    project: TestProject | None = Field(
        default=None, description="Project resolved by provisioning"
    )


class CaseResult(BaseModel):
    """Execution result for one TestLink case."""

    testcaseexternalid: str = Field(..., description="Case id, e.g. XPJ-112")
    testplanid: int | None = Field(default=None, description="Test plan id")
    buildid: int | None = Field(default=None, description="Build id")
    status: ExecutionStatus = Field(..., description="Execution status")
    execduration: float = Field(..., description="Execution time in minutes")
    notes: str = Field(default="", description="Failure notes")
    steps: list[StepResult] = Field(default_factory=list, description="Step results")

    def bind(self, context: RunContext) -> "CaseResult":
        """Return a copy carrying the plan and build of the run context."""
        return self.model_copy(
            update={"testplanid": context.testplanid, "buildid": context.buildid}
        )
