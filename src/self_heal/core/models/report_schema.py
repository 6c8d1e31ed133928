"""Pydantic schema of the Cucumber JSON run report and the live failure note."""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, RootModel


class StepResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str
    error_message: Optional[str] = None


class StepMatch(BaseModel):
    model_config = ConfigDict(extra="ignore")

    location: Optional[str] = None


class ReportStep(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    keyword: str = ""
    match: Optional[StepMatch] = None
    result: StepResult


class ReportScenario(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    steps: List[ReportStep] = Field(default_factory=list)


class ReportFeature(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    elements: List[ReportScenario] = Field(default_factory=list)


class RunReport(RootModel[List[ReportFeature]]):
    """A Cucumber JSON report: a list of features."""

    def __iter__(self):
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)


class LiveFailureNote(BaseModel):
    """Lightweight failure note that drives the live-document path."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    file: str = Field(validation_alias=AliasChoices("file", "feature"))
    url: Optional[str] = None
