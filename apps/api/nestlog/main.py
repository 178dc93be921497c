from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .db import initialize_db
from .routes import events as events_routes
from .routes import reports as report_routes

initialize_db()

app = FastAPI(
    title="NestLog API",
    version="0.1.0",
    description="Turns an infant's caregiving log into daily reports, recency cards, and a day timeline",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

app.include_router(events_routes.router)
app.include_router(report_routes.router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/")
async def root() -> dict:
    return {"message": "NestLog API ready"}
