from fastapi import FastAPI
from carelog.core.logging_config import configure_logging
from carelog.api.routes_parse import router as parse_router
from carelog.api.routes_drafts import router as drafts_router
from carelog.api.routes_records import router as records_router
from carelog.api.routes_settings import router as settings_router
from carelog.api.routes_chat import router as chat_router

configure_logging()

app = FastAPI(title="Care Log AI (extraction + review)", version="1.0")

app.include_router(parse_router)
app.include_router(drafts_router)
app.include_router(records_router)
app.include_router(settings_router)
app.include_router(chat_router)

@app.get("/health")
def health():
    return {"ok": True}
@app.get("/")
def root():
    return {"ok": True, "service": "Care Log AI (extraction + review)"}
