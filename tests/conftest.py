import os

# Must be in place before config, database or main are imported
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("SESSION_SWEEP_INTERVAL_SECONDS", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")
