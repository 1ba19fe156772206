from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_commerce.database import get_db


# Type alias for the request-scoped database session
DB = Annotated[AsyncSession, Depends(get_db)]
