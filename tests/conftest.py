# tests/conftest.py
import os

# Keep test runs away from the dev database; must be set before settings load
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_schedule_admin.db")
