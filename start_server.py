#!/usr/bin/env python3
"""
Start the FastAPI server with environment variables loaded from .env
"""
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent / '.env'
load_dotenv(env_path)

backend_path = Path(__file__).parent / 'backend'
sys.path.insert(0, str(backend_path))

# Verify critical environment variables
required_vars = ['DATABASE_URL', 'INGEST_API_TOKEN', 'CREDENTIAL_ENCRYPTION_KEY']
missing_vars = [var for var in required_vars if not os.getenv(var)]

if missing_vars:
    print(f"ERROR: Missing required environment variables: {', '.join(missing_vars)}")
    sys.exit(1)

print("✓ Environment variables loaded successfully")
print(f"✓ DATABASE_URL: {os.getenv('DATABASE_URL')[:30]}...")
print(f"✓ LINKUP_MOCK: {os.getenv('LINKUP_MOCK', 'false')}")

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "leadwatch.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        reload_dirs=[str(backend_path)]
    )
