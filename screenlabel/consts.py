from pathlib import Path

DEFAULT_DATA_DIR = (Path(__file__).parent.parent.resolve() / "data").absolute().resolve()

# Provider ids, in the order the default policy tries them
LOCAL_RETRIEVAL_PROVIDER_ID = "local.retrieval"
LOCAL_HTTP_PROVIDER_ID = "local.http"
CLOUD_TEXT_PROVIDER_ID = "cloud.openrouter.text"
CLOUD_VISION_PROVIDER_ID = "cloud.openrouter.vision"
LOCAL_BASELINE_PROVIDER_ID = "local.baseline"

# Application identity, used to skip addiction tracking on our own screens
SELF_APP_NAME = "Screenlabel"
SELF_APP_BUNDLE_ID = "app.screenlabel.desktop"

# Settings defaults
DEFAULT_CLOUD_MODEL = "openai/gpt-5"
DEFAULT_LOCAL_BASE_URL = "http://localhost:11434/v1"
DEFAULT_LOCAL_MODEL = "llama3.2"

# OpenRouter
OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
OPENROUTER_REFERER = "https://screenlabel.app"
OPENROUTER_TITLE = "Screenlabel"

# Environment variable names
ENV_API_KEY = "SCREENLABEL_API_KEY"
ENV_LOCAL_BASE_URL = "SCREENLABEL_LOCAL_BASE_URL"
ENV_LOCAL_MODEL = "SCREENLABEL_LOCAL_MODEL"
ENV_CLOUD_MODEL = "SCREENLABEL_CLOUD_MODEL"
