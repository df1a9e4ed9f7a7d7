from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shorts_pipeline.config import CORS_ORIGINS
from shorts_pipeline.logging_config import configure_logging
from shorts_pipeline.routers import jobs, pipeline

configure_logging()

app = FastAPI(title="Shorts Pipeline")

# Dashboard reads /jobs from the browser
if CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Register routers
app.include_router(jobs.router)
app.include_router(pipeline.router)


# Health check
@app.get("/")
def health_check():
    return {"status": "ok"}
