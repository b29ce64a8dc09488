"""SQLAlchemy models for the venue directory tables."""
from sqlalchemy import (
    Column,
    BigInteger,
    String,
    Boolean,
    DECIMAL,
    Float,
    Integer,
    Text,
    Time,
    DateTime,
    JSON,
    Enum,
    ForeignKey,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.constants import VENUE_STATUSES, VENUE_STATUS_PENDING
from app.infrastructure.persistence.db import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns
PrimaryKey = BigInteger().with_variant(Integer, "sqlite")


venue_to_venue_type = Table(
    "venue_to_venue_type",
    Base.metadata,
    Column("venue_id", BigInteger, ForeignKey("venues.id", ondelete="CASCADE"), primary_key=True),
    Column("venue_type_id", BigInteger, ForeignKey("venue_types.id", ondelete="CASCADE"), primary_key=True),
)


class VenueType(Base):
    __tablename__ = "venue_types"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    icon_url = Column(String(512))
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    venues = relationship("Venue", secondary=venue_to_venue_type, back_populates="venue_types")


class Venue(Base):
    __tablename__ = "venues"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    address = Column(String(512))
    latitude = Column(DECIMAL(10, 7))
    longitude = Column(DECIMAL(10, 7))
    city_id = Column(BigInteger, index=True)
    google_place_id = Column(String(255), unique=True, index=True)
    price_level = Column(Integer)
    website = Column(String(512))
    phone = Column(String(64))
    is_open_now = Column(Boolean)
    google_rating = Column(DECIMAL(3, 2))
    google_ratings_total = Column(Integer)
    rating = Column(DECIMAL(3, 2))
    review_count = Column(Integer, nullable=False, default=0)
    popularity = Column(Integer, nullable=False, default=0)
    view_count = Column(Integer, nullable=False, default=0)
    follower_count = Column(Integer, nullable=False, default=0)
    associated_plan_count = Column(Integer, nullable=False, default=0)
    trending_score = Column(Float, nullable=False, default=0.0)
    status = Column(Enum(*VENUE_STATUSES, name="venue_status"), nullable=False, default=VENUE_STATUS_PENDING, index=True)
    admin_overrides = Column(JSON)
    last_modified_by = Column(String(64))
    last_modified_at = Column(DateTime)
    last_refreshed = Column(DateTime, index=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    extra_metadata = Column("metadata", JSON)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    venue_types = relationship("VenueType", secondary=venue_to_venue_type, back_populates="venues")
    hours = relationship("VenueHour", back_populates="venue", cascade="all, delete-orphan")
    photos = relationship("VenuePhoto", back_populates="venue", cascade="all, delete-orphan")
    reviews = relationship("VenueReview", back_populates="venue", cascade="all, delete-orphan")


class VenueHour(Base):
    __tablename__ = "venue_hours"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    venue_id = Column(BigInteger, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(
        Enum("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday", name="day_of_week"),
        nullable=False,
    )
    open_time = Column(Time)
    close_time = Column(Time)
    is_closed = Column(Boolean, nullable=False, default=False)
    is_open_24_hours = Column(Boolean, nullable=False, default=False)

    venue = relationship("Venue", back_populates="hours")


class VenuePhoto(Base):
    __tablename__ = "venue_photos"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    venue_id = Column(BigInteger, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64))
    photo_url = Column(String(1024), nullable=False)
    thumbnail_url = Column(String(1024))
    medium_url = Column(String(1024))
    large_url = Column(String(1024))
    etag = Column(String(64))
    caption = Column(String(512))
    is_primary = Column(Boolean, nullable=False, default=False)
    is_approved = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False, default=0)
    source = Column(Enum("google", "admin", "user", name="photo_source"), nullable=False, default="user")
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    venue = relationship("Venue", back_populates="photos")


class VenueFollower(Base):
    __tablename__ = "venue_followers"
    __table_args__ = (UniqueConstraint("venue_id", "user_id", name="uq_venue_follower"),)

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    venue_id = Column(BigInteger, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime)


class VenueReview(Base):
    __tablename__ = "venue_reviews"
    __table_args__ = (UniqueConstraint("venue_id", "user_id", name="uq_venue_review_user"),)

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    venue_id = Column(BigInteger, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    review = Column(Text)
    is_verified_visit = Column(Boolean, nullable=False, default=False)
    upvote_count = Column(Integer, nullable=False, default=0)
    downvote_count = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    venue = relationship("Venue", back_populates="reviews")


class ScannedArea(Base):
    __tablename__ = "scanned_areas"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    geohash_prefix = Column(String(12), unique=True, nullable=False, index=True)
    last_scanned_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)
