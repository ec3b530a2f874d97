"""
Configuration settings for geo batch placement.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# API Server Configuration
API_HOST = os.getenv('API_HOST', '0.0.0.0')
API_PORT = int(os.getenv('API_PORT', '8081'))
DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'

# Identity allowed to call administrative operations
ADMIN_IDENTITY = os.getenv('ADMIN_IDENTITY', 'admin')

# Durable state; empty means in-memory only
STATE_DB_PATH = os.getenv('STATE_DB_PATH', '')

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

# Placement Configuration
MIN_CREDIT_SCORE = int(os.getenv('MIN_CREDIT_SCORE', '50'))
REPLICA_COUNT = int(os.getenv('REPLICA_COUNT', '3'))
MAX_BATCH_SIZE = int(os.getenv('MAX_BATCH_SIZE', '50'))
RECENT_WINDOW_SIZE = int(os.getenv('RECENT_WINDOW_SIZE', '1000'))
MAX_VALID_DISTANCE = int(os.getenv('MAX_VALID_DISTANCE', str(10 ** 14)))
