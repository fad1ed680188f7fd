import uvicorn

from tablebook.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "tablebook.main:app", host=settings.host, port=settings.port, reload=True, reload_dirs=["tablebook"]
    )
