import argparse

import uvicorn

from .server import create_app


def main():
    ap = argparse.ArgumentParser(description="donotimer server")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    args = ap.parse_args()

    # one process only: the update lock does not span workers
    config = uvicorn.Config(create_app(), host=args.host, port=args.port,
                            workers=1)
    uvicorn.Server(config).run()


if __name__ == "__main__":
    main()
