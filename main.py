# FastAPI Application Redirect
# The actual app lives in the leavewise package

from leavewise.main import app  # noqa: F401

# Lets uvicorn find the app when run from the repository root:
#   uvicorn main:app --host 0.0.0.0 --port 8001
