from dataclasses import dataclass
from typing import Optional, Annotated

from fastapi import Header, HTTPException

SchoolHeader = Annotated[Optional[int], Header(alias="X-School-Id")]
UserHeader = Annotated[Optional[int], Header(alias="X-User-Id")]


@dataclass(frozen=True)
class RequestContext:
    school_id: int      # tenant every query is scoped to
    user_id: int        # acting user (recorded as assessed_by_id)


def require_school(school_id: SchoolHeader = None) -> int:
    # tenant header is mandatory: nothing is readable without a school scope
    if school_id is None:
        raise HTTPException(status_code=401, detail="Missing X-School-Id header")
    return school_id


def require_context(school_id: SchoolHeader = None, user_id: UserHeader = None) -> RequestContext:
    if school_id is None:
        raise HTTPException(status_code=401, detail="Missing X-School-Id header")
    if user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return RequestContext(school_id=school_id, user_id=user_id)
