import os

import uvicorn

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    # Single worker: the LM readiness gate and shared HTTP clients live in
    # this process. Scale with more instances, not forked workers.
    workers = int(os.environ.get("WEB_CONCURRENCY", 1))
    uvicorn.run(
        "tirematch.main:app",
        host="0.0.0.0",
        port=port,
        workers=workers,
    )
