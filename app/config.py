import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=".env")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

# Tables
TIMER_RECORDS_TABLE = os.getenv("TIMER_RECORDS_TABLE", "timer_records")
BINGE_FREE_PERIODS_TABLE = os.getenv("BINGE_FREE_PERIODS_TABLE", "binge_free_periods")

# Display ticker period (seconds)
TIMER_TICK_INTERVAL_SECONDS = float(os.getenv("TIMER_TICK_INTERVAL_SECONDS", "0.01"))

# Persistence retry decorator (0 attempts = disabled)
PERSISTENCE_RETRY_ATTEMPTS = int(os.getenv("PERSISTENCE_RETRY_ATTEMPTS", "0"))
PERSISTENCE_RETRY_BASE_DELAY_MS = int(os.getenv("PERSISTENCE_RETRY_BASE_DELAY_MS", "200"))
PERSISTENCE_RETRY_MAX_DELAY_MS = int(os.getenv("PERSISTENCE_RETRY_MAX_DELAY_MS", "2000"))

# Minimum spacing between server-sent display events (seconds)
TIMER_STREAM_INTERVAL_SECONDS = float(os.getenv("TIMER_STREAM_INTERVAL_SECONDS", "0.1"))
