"""
GuestGlow - FastAPI Backend
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from guestglow import __version__
from guestglow.config import get_settings
from guestglow.middleware.logging_middleware import LoggingMiddleware
from guestglow.routes import (
    approvals,
    emails,
    feedback,
    health,
    ratings,
    reports,
    responses,
    reviews,
    risk,
    sla,
)

settings = get_settings()

app = FastAPI(
    title="GuestGlow",
    description="Guest feedback, review response and SLA escalation API",
    version=__version__
)

# Middleware runs bottom-up: logging wraps every request, CORS answers preflights first
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Router prefixes are defined in each router module
app.include_router(health.router)
app.include_router(risk.router)
app.include_router(responses.router)
app.include_router(approvals.router)
app.include_router(sla.router)
app.include_router(feedback.router)
app.include_router(emails.router)
app.include_router(reviews.router)
app.include_router(ratings.router)
app.include_router(reports.router)


@app.get("/")
async def root():
    return {"message": "GuestGlow API", "version": __version__}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.fastapi_host, port=settings.fastapi_port)
