# listing_pipeline/config.py
from dotenv import load_dotenv
import os

load_dotenv()

# API Keys
ABR_WEBSERVICES_GUID = os.getenv("ABR_WEBSERVICES_GUID")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

# Runtime parameters
BATCH_SIZE = int(os.getenv("BATCH_SIZE", "100"))
CONCURRENCY = int(os.getenv("CONCURRENCY", "10"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DRY_RUN = os.getenv("DRY_RUN", "true").lower() in ("1", "true", "yes")
DEDUPE_MODE = os.getenv("DEDUPE_MODE", "loose")
JOB_TTL_SECONDS = int(os.getenv("JOB_TTL_SECONDS", "3600"))
DETAIL_LIST_CAP = int(os.getenv("DETAIL_LIST_CAP", "20"))
LLM_MODERATION_ENABLED = os.getenv("LLM_MODERATION_ENABLED", "false").lower() in ("1", "true", "yes")

# Duplicate detection
LOOSE_SIMILARITY_THRESHOLD = 0.80

# Approval
AUTO_APPROVE_SCORE = 80
MODERATE_CONFIDENCE_SCORE = 60
MIN_BIO_LENGTH = 10
PREFERRED_BIO_LENGTH = 50
DETAILED_BIO_LENGTH = 100

# URLs
ABR_API_URL = os.getenv("ABR_API_URL", "https://abr.business.gov.au/json/AbnDetails.aspx")

# File names
INPUT_CSV = os.getenv("INPUT_CSV", "businesses.csv")
OUTPUT_CSV = os.getenv("OUTPUT_CSV", "businesses_export.csv")
