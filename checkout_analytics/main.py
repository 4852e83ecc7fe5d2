"""
FastAPI Production Application

Main entry point for the Checkout Analytics API.
"""

from checkout_analytics.serving.api.main import create_api_app

app = create_api_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
