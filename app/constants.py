"""Application constants that never change across environments.

These are true constants representing physical facts, mathematical formulas,
or fixed business logic that should never vary between dev/staging/prod.
"""

# ===== Geographic Constants =====
EARTH_RADIUS_MILES = 3959
METERS_PER_MILE = 1609.34
MILES_PER_DEGREE_LATITUDE = 69.0

# ===== Time Constants =====
SECONDS_PER_MINUTE = 60
MINUTES_PER_HOUR = 60
SECONDS_PER_HOUR = 3600
HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7

# ===== Trending Score Policy =====
TRENDING_PLAN_WEIGHT = 5.0
TRENDING_FOLLOW_WEIGHT = 2.5
TRENDING_VIEW_WEIGHT = 0.5
TRENDING_DECAY_RATE = 0.05  # per hour

# ===== Venue Status =====
VENUE_STATUS_PENDING = "pending"
VENUE_STATUS_ACTIVE = "active"
VENUE_STATUS_REJECTED = "rejected"
VENUE_STATUS_CLOSED = "closed"
VENUE_STATUSES = (
    VENUE_STATUS_PENDING,
    VENUE_STATUS_ACTIVE,
    VENUE_STATUS_REJECTED,
    VENUE_STATUS_CLOSED,
)

# ===== Photo Sources =====
PHOTO_SOURCE_GOOGLE = "google"
PHOTO_SOURCE_ADMIN = "admin"
PHOTO_SOURCE_USER = "user"

# ===== Venue Scanning =====
SCAN_JOB_ID_PREFIX = "scan-"

# Google place categories scanned for every stale area, in order
SCAN_PLACE_CATEGORIES = (
    "bar",
    "night_club",
    "restaurant",
    "cafe",
    "casino",
    "movie_theater",
    "amusement_park",
    "bowling_alley",
)

# Google place type -> internal venue type name
GOOGLE_TYPE_TO_VENUE_TYPE = {
    "bar": "Bar",
    "night_club": "Nightclub",
    "restaurant": "Restaurant",
    "cafe": "Café",
    "casino": "Casino",
    "movie_theater": "Entertainment",
    "amusement_park": "Entertainment",
    "bowling_alley": "Entertainment",
}
FALLBACK_VENUE_TYPE = "Other"

# ===== Rate Limiter Operations =====
RATE_LIMIT_OP_NEARBY = "places.nearby"
RATE_LIMIT_OP_DETAILS = "places.details"
RATE_LIMIT_OP_GEOCODE = "geocode"

# ===== Image Variants (width, height, fit) =====
IMAGE_VARIANTS = {
    "thumbnail": (150, 150, "cover"),
    "medium": (600, 400, "inside"),
    "large": (1200, 800, "inside"),
}

# ===== Cache Key Prefixes =====
CACHE_KEY_TRENDING_SCORE = "venue_trending_score"
CACHE_KEY_TRENDING_LIST = "trending_venues"
CACHE_KEY_VERSION = "venue:cache:version"

# ===== HTTP Status Codes (commonly used) =====
HTTP_OK = 200
HTTP_RATE_LIMIT = 429
HTTP_SERVER_ERROR = 500
