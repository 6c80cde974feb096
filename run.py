#!/usr/bin/env python3
"""
Entry point for the Kubbz API.

Usage:
    python run.py                          # Run the API server
    flask --app run init-db                # Create tables
    flask --app run reconcile-counters     # Repair participant counters
    flask --app run create-admin NAME EMAIL

Environment Variables:
    FLASK_ENV: development, production or testing (default: development)
    PORT: Port to run on (default: 3000)
    DATABASE_URL: SQLAlchemy database URL
    REDIS_URL: Redis URL for event publication (empty disables it)
"""
import os

from kubbz.app import create_app

app = create_app()


def run_api():
    """Run the API server."""
    port = int(os.getenv('PORT', 3000))
    debug = os.getenv('FLASK_ENV', 'development') == 'development'

    print(f"Starting Kubbz API on port {port}...")
    app.run(host='0.0.0.0', port=port, debug=debug)


if __name__ == '__main__':
    run_api()
