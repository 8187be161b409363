from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import Base


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, default="")
    theme = Column(Text, nullable=False, default="")
    logline = Column(Text, nullable=False, default="")
    genre = Column(String(255), nullable=False, default="")
    setting_time = Column(Text, nullable=False, default="")
    setting_place = Column(Text, nullable=False, default="")
    setting_world = Column(Text, nullable=False, default="")
    style_tone = Column(Text, nullable=False, default="")
    target_chapter_count = Column(Integer, nullable=True)
    target_chapter_word_count = Column(Integer, nullable=True)
    language = Column(String(64), nullable=False, default="English")
    instructions = Column(JSON, nullable=True)  # {pov, pacing, dialogue_style, sensory_details, key_elements, avoid}
    # Single active generation per project; NULL when idle
    active_outline_id = Column(Integer, nullable=True)
    active_phase = Column(String(32), nullable=True)
    active_started_at = Column(BigInteger, nullable=True)  # Unix timestamp
    active_claim_token = Column(String(32), nullable=True)
    created_at = Column(BigInteger, nullable=False)  # Unix timestamp
    updated_at = Column(BigInteger, nullable=False)  # Unix timestamp
    created_by = Column(String(255), nullable=False)  # User ID
    updated_by = Column(String(255), nullable=False)  # User ID
    characters = relationship(
        "Character", back_populates="project", order_by="Character.id", cascade="all, delete-orphan"
    )
    outline = relationship(
        "OutlineEntry",
        back_populates="project",
        order_by="OutlineEntry.position",
        cascade="all, delete-orphan",
    )
    chapters = relationship("Chapter", back_populates="project", cascade="all, delete-orphan")


class Character(Base):
    __tablename__ = "characters"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="Supporting")
    description = Column(Text, nullable=False, default="")
    background = Column(Text, nullable=False, default="")
    motivation = Column(Text, nullable=False, default="")
    arc_or_conflict = Column(Text, nullable=False, default="")
    project = relationship("Project", back_populates="characters")


class OutlineEntry(Base):
    __tablename__ = "outline_entries"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    title = Column(Text, nullable=False)
    summary = Column(Text, nullable=False, default="")
    created_at = Column(BigInteger, nullable=False)  # Unix timestamp
    updated_at = Column(BigInteger, nullable=False)  # Unix timestamp
    project = relationship("Project", back_populates="outline")
    chapter = relationship("Chapter", back_populates="outline_entry", uselist=False)


class Chapter(Base):
    __tablename__ = "chapters"
    __table_args__ = (UniqueConstraint("project_id", "outline_id", name="uq_chapters_project_outline"),)

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    outline_id = Column(Integer, ForeignKey("outline_entries.id"), nullable=False)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False, default="")
    draft_content = Column(Text, nullable=True)  # Unconfirmed prose from an in-flight or abandoned stream
    word_count = Column(Integer, nullable=False, default=0)
    created_at = Column(BigInteger, nullable=False)  # Unix timestamp
    updated_at = Column(BigInteger, nullable=False)  # Unix timestamp
    created_by = Column(String(255), nullable=False)  # User ID
    updated_by = Column(String(255), nullable=False)  # User ID
    project = relationship("Project", back_populates="chapters")
    outline_entry = relationship("OutlineEntry", back_populates="chapter")
    continuity_record = relationship(
        "ContinuityRecord", back_populates="chapter", uselist=False, cascade="all, delete-orphan"
    )


class ContinuityRecord(Base):
    __tablename__ = "continuity_records"

    id = Column(Integer, primary_key=True, index=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id"), nullable=False, unique=True)
    summary = Column(Text, nullable=False)
    key_events = Column(JSON, nullable=False, default=list)
    items = Column(JSON, nullable=False, default=list)
    location = Column(Text, nullable=False)
    characters = Column(JSON, nullable=False, default=list)
    created_at = Column(BigInteger, nullable=False)  # Unix timestamp
    chapter = relationship("Chapter", back_populates="continuity_record")


class CreditAccount(Base):
    __tablename__ = "user_credits"
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_user_credits_non_negative"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, unique=True, index=True)
    credits = Column(Integer, nullable=False)
    created_at = Column(BigInteger, nullable=False)  # Unix timestamp
    updated_at = Column(BigInteger, nullable=False)  # Unix timestamp


class CreditTransaction(Base):
    __tablename__ = "credit_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Negative for debits
    reason = Column(String(255), nullable=False)
    balance_after = Column(Integer, nullable=False)
    created_at = Column(BigInteger, nullable=False)  # Unix timestamp


class Setting(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(255), unique=True, index=True)
    title = Column(String(255), nullable=True)  # User-friendly title
    section = Column(String(255), nullable=True)  # Grouping category for settings
    value = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(32), nullable=False, default="string")  # string or list
    options = Column(Text, nullable=True)  # JSON string of options
