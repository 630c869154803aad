from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, Text


class User(BaseModel, Base):
    __tablename__ = "users"
    name = Column(String(255), nullable=True)
    # stored exactly as submitted; uniqueness is case-sensitive
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    # the single live session; NULL when logged out
    refresh_token = Column(Text, nullable=True, index=True)

    def claims(self) -> dict:
        return {"userId": self.id, "name": self.name, "email": self.email}
