import os

import uvicorn


def main():
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("nanowallet.app:app", host=host, port=port, lifespan="on")


if __name__ == "__main__":
    main()
