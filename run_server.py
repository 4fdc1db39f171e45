import os

import uvicorn

if __name__ == "__main__":
    host = os.environ.get("FORENSIC_HOST", "127.0.0.1")
    port = int(os.environ.get("FORENSIC_PORT", "8000"))

    print("Starting Forensic Analysis API Server...")
    print(f"Docs available at: http://{host}:{port}/docs")

    uvicorn.run(
        "forensic_engine.api.server:app",
        host=host,
        port=port,
        reload=os.environ.get("FORENSIC_RELOAD") == "1"
    )
