import os

import uvicorn
from dotenv import load_dotenv

# Load environment variables from .env in the current directory
load_dotenv()

HOST = os.getenv("BLOODWISE_HOST", "127.0.0.1")
PORT = int(os.getenv("BLOODWISE_PORT", "8000"))


def main() -> None:
    uvicorn.run("bloodwise.app:app", host=HOST, port=PORT, reload=False)


if __name__ == "__main__":
    main()
