import os
import tempfile

from dotenv import load_dotenv

load_dotenv()


def _optional_int(name):
    value = os.environ.get(name)
    return int(value) if value not in (None, '') else None


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # API Keys
    GOOGLE_API_KEY = os.environ.get('GOOGLE_API_KEY')
    GEMINI_MODEL = os.environ.get('GEMINI_MODEL') or 'gemini-2.0-flash'

    # Weather (Open-Meteo, no key required)
    WEATHER_API_URL = os.environ.get('WEATHER_API_URL') or 'https://api.open-meteo.com/v1/forecast'
    WEATHER_TIMEOUT_SECONDS = float(os.environ.get('WEATHER_TIMEOUT_SECONDS', 5))

    # Video analysis
    ANALYSIS_MAX_FRAMES = int(os.environ.get('ANALYSIS_MAX_FRAMES', 5))
    FLOW_METHOD = os.environ.get('FLOW_METHOD') or 'dense'
    FLOW_BACKEND_TIMEOUT_SECONDS = float(os.environ.get('FLOW_BACKEND_TIMEOUT_SECONDS', 15))

    # Pollution spread model
    POLLUTION_MODEL_TREES = int(os.environ.get('POLLUTION_MODEL_TREES', 100))
    POLLUTION_MODEL_MAX_DEPTH = int(os.environ.get('POLLUTION_MODEL_MAX_DEPTH', 15))
    POLLUTION_MODEL_MIN_SAMPLES_SPLIT = int(os.environ.get('POLLUTION_MODEL_MIN_SAMPLES_SPLIT', 3))
    POLLUTION_TRAINING_SAMPLES = int(os.environ.get('POLLUTION_TRAINING_SAMPLES', 1000))
    POLLUTION_MODEL_SEED = _optional_int('POLLUTION_MODEL_SEED')
    POLLUTION_MODEL_N_JOBS = int(os.environ.get('POLLUTION_MODEL_N_JOBS', 1))
    POLLUTION_MODEL_PATH = os.environ.get('POLLUTION_MODEL_PATH')

    # File upload settings
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER') or 'uploads'
    MAX_CONTENT_LENGTH = 200 * 1024 * 1024  # 200MB max video size
    ALLOWED_VIDEO_EXTENSIONS = {'mp4', 'mov', 'avi', 'webm', 'mkv'}


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    GOOGLE_API_KEY = None
    POLLUTION_MODEL_TREES = 5
    POLLUTION_MODEL_MAX_DEPTH = 6
    POLLUTION_TRAINING_SAMPLES = 120
    POLLUTION_MODEL_SEED = 7
    POLLUTION_MODEL_N_JOBS = 1
    POLLUTION_MODEL_PATH = None
    UPLOAD_FOLDER = os.path.join(tempfile.gettempdir(), 'river_flow_test_uploads')


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
