# Run with: uvicorn spark_voice.main:app --host 0.0.0.0 --port 3000 --reload

from fastapi import FastAPI

from spark_voice.twilio_routes import router as twilio_router, quote_handoff
from .config import PORT
from .logging_config import get_logger

logger = get_logger("main")

app = FastAPI(title="TotalSpark Voice Intake")

app.include_router(twilio_router)


@app.on_event("startup")
def on_startup():
    logger.info(f"🚀 TotalSpark voice intake listening on {PORT}")


@app.on_event("shutdown")
def on_shutdown():
    quote_handoff.close()


@app.get("/health")
async def health_check():
    return {"status": "ok"}
