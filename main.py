import argparse
import asyncio

import uvicorn

from internal.app import create_app

app = create_app()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Third-party login service")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind")
    parser.add_argument("--port", type=int, default=8090, help="Port to run the server on")
    args = parser.parse_args()

    config = uvicorn.Config("main:app", host=args.host, port=args.port, reload=False)
    server = uvicorn.Server(config)
    asyncio.run(server.serve())
