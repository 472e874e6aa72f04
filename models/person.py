from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index, text, func
from database.models_base import Base


class Person(Base):
    __tablename__ = 'persons'

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(255), nullable=False)
    nicknames = Column(String(500), nullable=True)
    home_page_url = Column(String(500), nullable=True)
    image_url = Column(String(500), nullable=True)

    # XWord Info profile (constructors and editors)
    hide_xwordinfo = Column(Boolean, nullable=False, default=False, server_default=text('0'))
    xwordinfo_profile_name = Column(String(255), nullable=True)
    xwordinfo_image_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_persons_full_name', 'full_name'),
        Index('idx_persons_xwordinfo_profile', 'xwordinfo_profile_name'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "nicknames": self.nicknames,
            "home_page_url": self.home_page_url,
            "image_url": self.image_url,
            "hide_xwordinfo": bool(self.hide_xwordinfo),
            "xwordinfo_profile_name": self.xwordinfo_profile_name,
            "xwordinfo_image_url": self.xwordinfo_image_url,
        }

    def __repr__(self):
        return f"<Person(id={self.id}, full_name={self.full_name})>"
