import os

import uvicorn
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def main():
    # Get port from environment
    port = int(os.getenv("API_PORT", "8001"))

    # Get host from environment
    host = os.getenv("API_HOST", "127.0.0.1")  # Default to localhost

    # Reload only when explicitly asked for; plugins hold in-memory state
    reload = os.getenv("API_RELOAD", "false").lower() in ("1", "true", "yes")

    uvicorn.run(
        "trove.main:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    main()
