#!/usr/bin/env python3
"""
Run the Training Reminder API

Usage:
    python run_server.py

Or with uvicorn directly:
    uvicorn app:app --reload --port 8080
"""

import uvicorn

from settings import load_settings


def main():
    """Run the reminder API with settings from the environment"""
    settings = load_settings()

    print("Starting Training Reminder API...")
    print(f"Host: {settings.host}")
    print(f"Port: {settings.port}")
    print(f"Reload: {settings.reload}")
    print(f"Tick: {settings.tick_interval_ms}ms, audio: {settings.audio_enabled}")
    print(f"API Documentation: http://{settings.host}:{settings.port}/docs")
    print()

    uvicorn.run(
        "app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
