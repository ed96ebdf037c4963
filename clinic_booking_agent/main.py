"""
Main application entry point for the clinic booking agent.
"""

import uvicorn
from .api.app import create_app

app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "clinic_booking_agent.main:app",
        host="0.0.0.0",
        port=8001,
        reload=True
    )
