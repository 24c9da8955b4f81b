import os

from dotenv import load_dotenv

load_dotenv()

# ============================================================
# SERVICE
# ============================================================
SERVICE_NAME = "AI Crop Service"
SERVICE_VERSION = "2.0.0"
CROP_API_CONTRACT_VERSION = "1"
API_PREFIX = "/api"

# ============================================================
# VISION MODEL (OpenAI-compatible chat completions)
# ============================================================
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
OPENAI_BASE_URL = os.getenv('OPENAI_BASE_URL', 'https://api.openai.com/v1')
DEFAULT_VISION_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4.1-2025-04-14')
OPENAI_TIMEOUT_SECONDS = float(os.getenv('OPENAI_TIMEOUT', '60'))
ANALYZE_TIMEOUT_SECONDS = 15.0
# Overall deadline for one public crop request
CROP_SERVICE_TIMEOUT_SECONDS = float(os.getenv('CROP_SERVICE_TIMEOUT', '60'))

VISION_MAX_TOKENS = 1500
VISION_TEMPERATURE = 0.1
DEBUG_MAX_TOKENS = 800
DEBUG_TEMPERATURE = 0.3
VISION_MAX_ATTEMPTS = 2
VISION_BACKOFF_DELAYS = [1.0, 2.0]
ANALYZE_MAX_TOKENS = 500
ANALYZE_TEMPERATURE = 0.7

# Pricing per 1K tokens (input, output), used for cost estimates only
VISION_PRICING = {
    "gpt-4.1-2025-04-14": (0.002, 0.008),
    "gpt-4o": (0.0025, 0.01),
    "gpt-4o-mini": (0.00015, 0.0006),
}
DEFAULT_VISION_PRICING = (0.0025, 0.01)
VISION_DAILY_BUDGET = float(os.getenv('VISION_DAILY_BUDGET', '0')) or None

# ============================================================
# PROMPTS
# ============================================================
DEFAULT_CROP_MODE = "aesthetic"
DEFAULT_LANGUAGE = "zh"
SUPPORTED_LANGUAGES = ["en", "zh", "es", "ja"]
ANALYZE_PROMPT_VERSION = "v1.0"

# ============================================================
# CROP GEOMETRY
# ============================================================
MIN_CROP_SIZE = 100
EDGE_SAFETY_MARGIN = 50
DEFAULT_CENTER_CROP_FACTOR = 0.8
MAX_OUTPUT_WIDTH = 1920
DEFAULT_SCENE = "instagram-post"
DEFAULT_RATIO = "1:1"

# ============================================================
# IMAGE UPLOADS
# ============================================================
MAX_IMAGE_SIZE = int(os.getenv('MAX_IMAGE_SIZE', str(50 * 1024 * 1024)))
ALLOWED_IMAGE_TYPES = os.getenv(
    'ALLOWED_IMAGE_TYPES',
    'image/jpeg,image/png,image/gif,image/webp,image/avif,'
    'image/heic,image/heif,image/bmp,image/tiff',
).split(',')
ALLOWED_IMAGE_EXTENSIONS = [
    "jpeg", "jpg", "png", "gif", "webp", "avif",
    "heic", "heif", "bmp", "tiff", "tif",
]
MAX_BATCH_IMAGES = 20

# ============================================================
# STORAGE
# ============================================================
OUTPUT_DIR = os.getenv('CROP_OUTPUT_DIR', 'output')
TEMP_DIR = os.getenv('CROP_TEMP_DIR', 'temp')

# ============================================================
# CACHE
# ============================================================
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379')
CACHE_ENABLED = os.getenv('ENABLE_CACHE', 'false').lower() == 'true'
CACHE_TTL_SECONDS = int(os.getenv('CACHE_TTL', '3600'))
DEDUP_CACHE_ENABLED = os.getenv('ENABLE_DEDUP_CACHE', 'false').lower() == 'true'

# ============================================================
# RATE LIMITING
# ============================================================
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv('RATE_LIMIT_WINDOW', '900000')) // 1000
RATE_LIMIT_MAX = int(os.getenv('RATE_LIMIT_MAX', '100'))
RATE_LIMIT_USE_REDIS = os.getenv('RATE_LIMIT_USE_REDIS', 'false').lower() == 'true'

# ============================================================
# DAILY USAGE
# ============================================================
DAILY_USAGE_LIMIT = int(os.getenv('DAILY_USAGE_LIMIT', '30'))
DAILY_WARNING_THRESHOLD = int(os.getenv('DAILY_WARNING_THRESHOLD', '3'))
DAILY_RESET_HOUR = int(os.getenv('DAILY_RESET_HOUR', '0'))

# ============================================================
# SECURITY
# ============================================================
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')
    if origin.strip()
]
ENABLE_LOGGING = os.getenv('ENABLE_LOGGING', 'false').lower() == 'true'
PLACEHOLDER_API_KEYS = ["your_openai_api_key_here", "your_api_key_here"]

# ============================================================
# MESSAGES
# ============================================================
MSG_DAILY_LIMIT_ZH = "今天的{limit}次免费裁剪已用完，明天00:00重置"
MSG_DAILY_LIMIT_EN = "Daily limit of {limit} free crops exceeded. Resets at 00:00 tomorrow."
MSG_TIMEOUT_ZH = "AI服务响应超时，请稍后重试"
MSG_UNAVAILABLE_ZH = "AI裁剪服务暂时不可用"
MSG_UNAVAILABLE_EN = "AI cropping service temporarily unavailable"
