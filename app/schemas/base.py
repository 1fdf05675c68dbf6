from datetime import datetime
from pydantic import BaseModel

class BaseSchema(BaseModel):
    class Config:
        from_attributes = True

# rows owned by a user (notifications)
class UserRecordSchema(BaseSchema):
    id: str
    user_id: str
    created_at: datetime | None = None

# envelope shared by mutating endpoints
class ActionResponse(BaseModel):
    success: bool = True
    message: str
