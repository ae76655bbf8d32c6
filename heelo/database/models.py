"""
heelo.database.models — SQLAlchemy 2.0 Data Models
===================================================

Tables:
- clan_families        — Reference taxonomy for profile lineage
- subclans             — Children of a clan family
- profiles             — One row per identity (created on first login)
- interest_actions     — Directed hello / ignore edges, one per ordered pair
- matches              — Undirected pair, stored as canonical (low, high)
- conversation_threads — Exactly one per match, created lazily
- messages             — Thread messages, at most one system greeting
- notifications        — Outbox of events for a profile it did not cause

Every "exactly one" rule is a UNIQUE constraint here; services rely on
the database to reject the loser of a race (see
:func:`heelo.database.engine.insert_or_get`).
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    """Return a fresh opaque identifier (lower-case UUID4 string)."""
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Heelo ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Gender(enum.StrEnum):
    MALE = "male"
    FEMALE = "female"


class LocationCategory(enum.StrEnum):
    HOME_REGION = "home_region"
    DIASPORA = "diaspora"


class ActionKind(enum.StrEnum):
    """What the sender did when the candidate was shown."""
    HELLO = "hello"
    IGNORE = "ignore"


class ActionStatus(enum.StrEnum):
    """The receiver's disposition of an interest action."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    IGNORED = "ignored"


class MatchOrigin(enum.StrEnum):
    """Which trigger committed the match row first."""
    MUTUAL = "mutual"
    ACCEPT = "accept"


class MessageKind(enum.StrEnum):
    TEXT = "text"
    SYSTEM = "system"


class NotificationKind(enum.StrEnum):
    HELLO_RECEIVED = "hello_received"
    HELLO_ACCEPTED = "hello_accepted"


# ---------------------------------------------------------------------------
# Reference data — clan families and subclans
# ---------------------------------------------------------------------------
class ClanFamily(Base):
    __tablename__ = "clan_families"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    subclans: Mapped[list[Subclan]] = relationship(
        back_populates="clan_family", order_by="Subclan.name"
    )

    def __repr__(self) -> str:
        return f"<ClanFamily id={self.id} name={self.name!r}>"


class Subclan(Base):
    __tablename__ = "subclans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clan_family_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clan_families.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    clan_family: Mapped[ClanFamily] = relationship(back_populates="subclans")

    __table_args__ = (
        UniqueConstraint("clan_family_id", "name", name="uq_subclans_family_name"),
    )

    def __repr__(self) -> str:
        return f"<Subclan id={self.id} name={self.name!r} family={self.clan_family_id}>"


# ---------------------------------------------------------------------------
# Profile — one row per identity
# ---------------------------------------------------------------------------
class Profile(Base):
    """A participant.

    ``id`` is our own opaque identifier; ``identity_id`` is the external
    identity provider's user id and is unique so a login can only ever
    create one profile.  ``is_complete`` is recomputed by
    :mod:`heelo.services.profile_service` on every write.
    """
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    identity_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[str | None] = mapped_column(String(10), default=None)
    bio: Mapped[str | None] = mapped_column(Text, default=None)
    photo_refs: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    location_category: Mapped[str | None] = mapped_column(String(20), default=None)
    location_value: Mapped[str | None] = mapped_column(String(100), default=None)
    clan_family_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("clan_families.id", ondelete="SET NULL"), nullable=True
    )
    subclan_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("subclans.id", ondelete="SET NULL"), nullable=True
    )
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    clan_family: Mapped[ClanFamily | None] = relationship()
    subclan: Mapped[Subclan | None] = relationship()

    __table_args__ = (
        CheckConstraint("age >= 18", name="ck_profiles_adult"),
        Index("ix_profiles_discovery", "is_complete", "age"),
    )

    def __repr__(self) -> str:
        return f"<Profile id={self.id} name={self.display_name!r} complete={self.is_complete}>"


# ---------------------------------------------------------------------------
# InterestAction — one directed edge per ordered (sender, receiver)
# ---------------------------------------------------------------------------
class InterestAction(Base):
    __tablename__ = "interest_actions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    sender_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    receiver_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=ActionStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("sender_id", "receiver_id", name="uq_interest_actions_pair"),
        CheckConstraint("sender_id <> receiver_id", name="ck_interest_actions_not_self"),
        Index("ix_interest_actions_receiver_status", "receiver_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<InterestAction id={self.id} {self.sender_id}->{self.receiver_id} "
            f"kind={self.kind} status={self.status}>"
        )


# ---------------------------------------------------------------------------
# Match — undirected pair in canonical (low, high) order
# ---------------------------------------------------------------------------
class Match(Base):
    __tablename__ = "matches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_low_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    user_high_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    origin: Mapped[str] = mapped_column(
        String(10), nullable=False, default=MatchOrigin.MUTUAL.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    thread: Mapped[ConversationThread | None] = relationship(
        back_populates="match", uselist=False
    )

    __table_args__ = (
        UniqueConstraint("user_low_id", "user_high_id", name="uq_matches_pair"),
        CheckConstraint("user_low_id < user_high_id", name="ck_matches_canonical"),
        Index("ix_matches_high", "user_high_id"),
    )

    def participants(self) -> tuple[str, str]:
        return self.user_low_id, self.user_high_id

    def other(self, profile_id: str) -> str:
        """Return the counterpart of *profile_id* in this match."""
        return self.user_high_id if profile_id == self.user_low_id else self.user_low_id

    def __repr__(self) -> str:
        return f"<Match id={self.id} {self.user_low_id}<->{self.user_high_id}>"


# ---------------------------------------------------------------------------
# ConversationThread — exactly one per match
# ---------------------------------------------------------------------------
class ConversationThread(Base):
    __tablename__ = "conversation_threads"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    match_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    match: Mapped[Match] = relationship(back_populates="thread")

    def __repr__(self) -> str:
        return f"<ConversationThread id={self.id} match={self.match_id}>"


# ---------------------------------------------------------------------------
# Message — belongs to one thread
# ---------------------------------------------------------------------------
class Message(Base):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    thread_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("conversation_threads.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Profile id, or SYSTEM_SENDER_ID for bootstrap messages (no FK).
    sender_id: Mapped[str] = mapped_column(String(36), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(
        String(10), nullable=False, default=MessageKind.TEXT.value
    )
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_messages_thread_time", "thread_id", "created_at"),
        # One system greeting per thread
        Index(
            "uq_messages_thread_system",
            "thread_id",
            unique=True,
            postgresql_where=text("kind = 'system'"),
            sqlite_where=text("kind = 'system'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Message id={self.id} thread={self.thread_id} kind={self.kind}>"


# ---------------------------------------------------------------------------
# Notification — outbox row for the downstream delivery transport
# ---------------------------------------------------------------------------
class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    target_profile_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    related_profile_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_notifications_target_unread", "target_profile_id", "is_read"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification id={self.id} target={self.target_profile_id} "
            f"kind={self.kind}>"
        )
