"""
Vercel entry point for the Helpdesk SLA API
"""
import os

# Set environment variables for serverless
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("SLA_REFRESH_INTERVAL", "0")  # No background jobs in serverless
os.environ.setdefault("TICKET_RELOAD_INTERVAL", "0")

from mangum import Mangum
from helpdesk.main import app

# Lambda handler for ASGI app; lifespan runs once per cold start
handler = Mangum(app, lifespan="auto")
