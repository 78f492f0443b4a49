import argparse
import sys

from snapdl.config.settings import settings


def main(argv=None):
    parser = argparse.ArgumentParser("snapdl")
    sub = parser.add_subparsers(dest="cmd")

    serve = sub.add_parser("serve", help="Run the MediaSnap web app")
    serve.add_argument("--host", default=settings.HOST)
    serve.add_argument("--port", type=int, default=settings.PORT)

    args = parser.parse_args(argv)

    if args.cmd == "serve":
        try:
            import uvicorn

            # one worker: the job table lives in this process
            uvicorn.run(
                "snapdl.web.api:app",
                host=args.host,
                port=args.port,
                workers=1,
                reload=False,
            )
            return 0
        except KeyboardInterrupt:
            print("\n[i] Stopped by user.")
            return 0
        except Exception as e:
            print(f"[!] Could not start the server: {e!r}")
            return 1

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
