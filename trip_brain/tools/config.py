import os


S3_BUCKET = os.getenv("TRIP_BRAIN_S3_BUCKET", "trip-brain-state")
S3_PREFIX = os.getenv("TRIP_BRAIN_S3_PREFIX", "companion/triggers")
AWS_REGION = os.getenv("AWS_REGION", "ap-southeast-1")

ENRICHMENT_CACHE_SECONDS = int(os.getenv("TRIP_BRAIN_ENRICHMENT_CACHE_SECONDS", "300"))
DEFAULT_RECOMMENDATION_COUNT = int(os.getenv("TRIP_BRAIN_RECOMMENDATION_COUNT", "3"))
MINIMUM_SCORE = float(os.getenv("TRIP_BRAIN_MINIMUM_SCORE", "0.3"))
MAX_DISTANCE_METERS = float(os.getenv("TRIP_BRAIN_MAX_DISTANCE_METERS", "5000"))

MAX_MESSAGES_PER_POLL = int(os.getenv("TRIP_BRAIN_MAX_MESSAGES_PER_POLL", "3"))
METRICS_PORT = int(os.getenv("TRIP_BRAIN_METRICS_PORT", "8000"))
