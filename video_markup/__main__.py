import uvicorn

from video_markup.config import settings

if __name__ == "__main__":
    uvicorn.run("video_markup.main:app", host=settings.host, port=settings.port)
