import argparse

from interview_copilot.config import Config


def main():
    parser = argparse.ArgumentParser(description="Interview Copilot local server")
    parser.add_argument("--host", default=Config.HOST)
    parser.add_argument("--port", type=int, default=Config.PORT)
    parser.add_argument("--log-level", default=Config.LOG_LEVEL)
    args = parser.parse_args()

    Config.LOG_LEVEL = args.log_level

    import uvicorn
    uvicorn.run("interview_copilot.main:app", host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
