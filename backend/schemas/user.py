from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional, List
from datetime import datetime

# Shared properties for user models
class UserBase(BaseModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for user registration requests
class UserCreate(UserBase):
    password: str = Field(min_length=6, max_length=72)
    full_name: str = Field(min_length=1)
    phone: Optional[str] = None

# Identity as seen by the storefront after reconciliation
class IdentityResponse(BaseModel):
    id: str
    email: str
    role: str
    is_admin: bool
    full_name: Optional[str] = None
    phone: Optional[str] = None

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: IdentityResponse

class PasswordChange(BaseModel):
    new_password: str = Field(min_length=6, max_length=72)

class PasswordResetRequest(BaseModel):
    email: EmailStr
    redirect_to: Optional[str] = None

class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(min_length=6, max_length=72)

# Admin user listing row (profile joined with its effective role)
class UserAdminRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None

class UsersPage(BaseModel):
    items: List[UserAdminRow]
    total: int

# Schema for administrative role updates
class RoleUpdate(BaseModel):
    role: str
