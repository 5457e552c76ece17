import os
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

class Config:
    """
    Configuration class for SnapEvent travel schedules.
    This class loads configuration values from environment variables or uses default values.
    """
    # General configuration
    DEBUG = os.environ.get('DEBUG', 'False') == 'True'

    # Timezone used for naive event times
    TIMEZONE = os.environ.get('TIMEZONE', 'Pacific/Auckland')

    # Routing provider
    GOOGLE_MAPS_API_KEY = os.environ.get('GOOGLE_MAPS_API_KEY')
    DIRECTIONS_URL = os.environ.get('DIRECTIONS_URL', 'https://maps.googleapis.com/maps/api/directions/json')
    REQUEST_TIMEOUT = float(os.environ.get('REQUEST_TIMEOUT', 30))

    # Participant store and schedule cache
    USERS_API_URL = os.environ.get('USERS_API_URL')
    REDIS_URL = os.environ.get('REDIS_URL')

    # Schedule generation
    OUTBOUND_BUFFER_MINUTES = int(os.environ.get('OUTBOUND_BUFFER_MINUTES', 5))
    MAX_WORKERS = int(os.environ.get('MAX_WORKERS', 8))
