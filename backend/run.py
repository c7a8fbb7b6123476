"""
Run the support desk automation API with uvicorn.

Usage:
    python run.py
    python run.py --reload          # Development mode with auto-reload
    python run.py --port 8080       # Custom port
    python run.py --log-level debug # Uvicorn log level
"""
import argparse
import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Run the support desk automation API server")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker processes (default: 1). Channel test locks are per process."
    )
    parser.add_argument(
        "--log-level",
        choices=["critical", "error", "warning", "info", "debug"],
        default="info",
        help="Uvicorn log level (application logging follows LOG_LEVEL)"
    )
    
    args = parser.parse_args()
    workers = 1 if args.reload else args.workers
    
    print("Starting support desk automation API server...")
    print(f"  Listening: http://{args.host}:{args.port}")
    print(f"  Reload: {args.reload}, workers: {workers}")
    print()
    
    uvicorn.run(
        "supportdesk.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=workers,
        log_level=args.log_level
    )


if __name__ == "__main__":
    main()
