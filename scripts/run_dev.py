#!/usr/bin/env python3
"""
Development server runner for the SQL agent API.

Loads .env from the project root, then starts uvicorn with the
settings from ServerConfig.
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

from dotenv import load_dotenv

env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)
    print(f"Loaded environment variables from {env_file}")
else:
    print(f"No .env file found at {env_file}")
    print("  DATABASE__DATABASE_URL must be set in the environment")

if __name__ == "__main__":
    import uvicorn
    from sql_agent.config import get_settings

    server_config = get_settings().server
    base_url = f"http://{server_config.host}:{server_config.port}"

    print("Starting SQL agent development server...")
    print(f"  API Documentation: {base_url}/docs")
    print(f"  Health Check:      {base_url}/health")
    print(f"  Ask:               {base_url}/rag/ask?q=top+5+products+by+price")
    print()

    uvicorn.run(
        server_config.app_module,
        host=server_config.host,
        port=server_config.port,
        reload=server_config.reload,
        workers=server_config.workers,
        reload_dirs=[str(src_path)],
        log_config=None,  # structlog handles logging
        access_log=False  # logging_middleware logs requests
    )
