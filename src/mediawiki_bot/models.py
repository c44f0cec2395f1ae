"""Pydantic models for results returned by the client."""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field


class Revision(BaseModel):
    """One entry of a page's revision history."""

    model_config = ConfigDict(extra="allow")

    revid: int
    parentid: Optional[int] = None
    user: Optional[str] = None
    timestamp: datetime
    comment: Optional[str] = None
    size: Optional[int] = None
    tags: List[str] = Field(default_factory=list)


class PageContent(BaseModel):
    """Latest (or requested) content of a page."""

    title: str
    content: str
    timestamp: datetime


class PageHistory(BaseModel):
    """Revisions of a page, newest first."""

    title: str
    revisions: List[Revision]


class CategoryMembers(BaseModel):
    """Members of a category, split by namespace, in API order."""

    category: str
    pages: List[str] = Field(default_factory=list)
    subcategories: List[str] = Field(default_factory=list)


class UserInfo(BaseModel):
    """The account the client is acting as."""

    model_config = ConfigDict(extra="allow")

    id: int
    name: str

    @property
    def anonymous(self) -> bool:
        return self.id == 0 or "anon" in (self.model_extra or {})


class EditResult(BaseModel):
    """Outcome of a successful edit."""

    title: str
    newrevid: Optional[int] = None
    newtimestamp: Optional[datetime] = None
    nochange: bool = False
