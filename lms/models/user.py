from sqlalchemy import Column, Date, DateTime, Integer, SmallInteger, String, Text
from sqlalchemy.sql import func

from lms.models.database import Base

STATUS_INACTIVE = 0
STATUS_ACTIVE = 1

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLE_MANAGER = "manager"
ROLES = (ROLE_ADMIN, ROLE_USER, ROLE_MANAGER)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    mobile_no = Column(String(20), nullable=True)
    # Either a pbkdf2_sha256 hash or a legacy plaintext/md5/sha1/sha256 value
    password = Column(String(255), nullable=False)
    fcm_id = Column(String(255), nullable=True)
    role = Column(String(32), nullable=False, default=ROLE_USER)  # admin | user | manager
    image_url = Column(String(512), nullable=True)
    address = Column(Text, nullable=True)
    dob = Column(Date, nullable=True)
    gender = Column(String(32), nullable=True)
    school_name = Column(String(255), nullable=True)
    roll_no = Column(String(64), nullable=True)
    status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)  # 0 inactive | 1 active
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
