import uvicorn

from poscore.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "poscore.app:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
