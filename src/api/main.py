from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes.jobs import router as jobs_router

app = FastAPI(
    title="Podcast Summarizer API",
    description="AI summaries of YouTube podcasts: fetch, clean, summarize",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
    ],
    allow_origin_regex=r"https://.*\.vercel\.app|http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(jobs_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
