#!/usr/bin/env python3
"""Mint a bearer token for local testing against the JWT identity backend.

Usage:
    # From project root, with the same JWT_SECRET the API runs with:
    python scripts/create_dev_token.py some-user-id

    curl -X POST http://localhost:8000/api/process-receipt \
        -H "Authorization: Bearer $(python scripts/create_dev_token.py dev-user)" \
        -H "Content-Type: application/json" \
        -d '{"extractedText": "MILK $3.99"}'
"""

import os
import sys
from datetime import timedelta

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from receipt_relay.config import get_settings
from receipt_relay.services.auth import create_access_token


def main() -> None:
    """Print a token for the user id given on the command line."""
    user_id = sys.argv[1] if len(sys.argv) > 1 else "dev-user"
    settings = get_settings()
    if settings.identity_backend != "jwt":
        sys.exit("IDENTITY_BACKEND is not 'jwt'; dev tokens would be rejected")
    print(
        create_access_token(
            user_id, settings.jwt_secret, settings.jwt_algorithm, expires_in=timedelta(days=1)
        )
    )


if __name__ == "__main__":
    main()
