from pydantic import BaseModel, ConfigDict, Field, computed_field
from typing import List, Optional
from datetime import datetime


class ProfileDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: Optional[str] = None
    bio: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    expertise_levels: List[int] = Field(default_factory=list)
    is_mentor: bool = False
    group_id: Optional[str] = None
    group_size: int = 0


class GroupDTO(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    is_active: bool = True
    group_size: int = 0
    origin: str = "matched"
    parent_ids: List[str] = Field(default_factory=list)
    deactivated_reason: Optional[str] = None
    mentors: List[str] = Field(default_factory=list)
    members: List[ProfileDTO] = Field(default_factory=list)


class MatchTaskDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    profile_id: str
    reason: str
    status: str
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


class UnitFailure(BaseModel):
    unit: str
    error_type: str
    detail: str


class Anomaly(BaseModel):
    kind: str  # "no_mentor" | "inconsistent_state"
    subject_id: str
    detail: str


class MatchingSummary(BaseModel):
    groups_created: int = 0
    groups_split: int = 0
    groups_merged: int = 0
    profiles_unassigned: int = 0
    tasks_processed: int = 0
    failures: List[UnitFailure] = Field(default_factory=list)
    anomalies: List[Anomaly] = Field(default_factory=list)

    @computed_field
    @property
    def ok(self) -> bool:
        return not self.failures

    def record_failure(self, unit: str, error: Exception):
        self.failures.append(
            UnitFailure(unit=unit, error_type=type(error).__name__, detail=str(error))
        )

    def record_anomaly(self, kind: str, subject_id: str, detail: str):
        self.anomalies.append(Anomaly(kind=kind, subject_id=subject_id, detail=detail))
