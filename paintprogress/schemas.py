from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from .models import DETAILS_MAX_LENGTH, FACTION_MAX_LENGTH, NAME_MAX_LENGTH
from .services.records import STATES

MAX_MODELS = 500


def _check_state(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in STATES:
        raise ValueError(f"must be one of: {', '.join(STATES)}")
    return value


StateName = Annotated[Optional[str], AfterValidator(_check_state)]


class CommandForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    champion: Optional[int] = Field(None, ge=0, strict=True)
    musician: Optional[int] = Field(None, ge=0, strict=True)
    banner_bearer: Optional[int] = Field(None, ge=0, strict=True, alias="bannerBearer")


class EntryForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH, strict=True)
    faction: str = Field("", max_length=FACTION_MAX_LENGTH, strict=True)
    category: Literal["Unit", "Character"] = "Unit"
    model_count: int = Field(..., ge=1, le=MAX_MODELS, strict=True, alias="modelCount")
    progress_count: int = Field(0, ge=0, le=MAX_MODELS, strict=True, alias="progressCount")
    details: str = Field("", max_length=DETAILS_MAX_LENGTH, strict=True)
    command: Optional[CommandForm] = None
    state: StateName = None


class TransitionForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    state: StateName = None
    progress_count: Optional[int] = Field(
        None, ge=0, le=MAX_MODELS, strict=True, alias="progressCount"
    )


class ListTextForm(BaseModel):
    text: str = Field(..., max_length=200_000)
    faction: Optional[str] = Field(None, max_length=FACTION_MAX_LENGTH)
