"""Script AST schemas.

The engine consumes only these models, so any producer (the bundled line
parser, a JSON document, a database) can feed it validated data.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TriggerAST(BaseModel):
    """One trigger and its response rules"""

    pattern: str = Field(..., min_length=1, description="trigger text (+ line)")
    replies: list[str] = Field(default_factory=list, description="- lines")
    conditions: list[str] = Field(default_factory=list, description="* lines")
    redirect: Optional[str] = Field(None, description="@ line")
    previous: Optional[str] = Field(None, description="% line")


class TopicAST(BaseModel):
    """Triggers declared inside one > topic block"""

    triggers: list[TriggerAST] = Field(default_factory=list)
    includes: list[str] = Field(default_factory=list)
    inherits: list[str] = Field(default_factory=list)


class ObjectAST(BaseModel):
    """> object <name> <language> ... < object"""

    name: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1)
    code: list[str] = Field(default_factory=list)


class BeginAST(BaseModel):
    """! definitions"""

    model_config = ConfigDict(populate_by_name=True)

    global_: dict[str, str] = Field(default_factory=dict, alias="global")
    var: dict[str, str] = Field(default_factory=dict)
    sub: dict[str, str] = Field(default_factory=dict)
    person: dict[str, str] = Field(default_factory=dict)
    array: dict[str, list[str]] = Field(default_factory=dict)


class RootAST(BaseModel):
    """A whole parsed document"""

    begin: BeginAST = Field(default_factory=BeginAST)
    topics: dict[str, TopicAST] = Field(default_factory=dict)
    objects: list[ObjectAST] = Field(default_factory=list)
