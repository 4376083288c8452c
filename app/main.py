# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import init_db
from app.routes.assignment import router as assignment_router
from app.routes.news import router as news_router
from app.routes.quiz import router as quiz_router
from app.routes.weekly_script import router as weekly_script_router

app = FastAPI(title=settings.PROJECT_NAME)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,  # Frontend URLs
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods (GET, POST, PUT, DELETE, etc.)
    allow_headers=["*"],  # Allows all headers
)


@app.on_event("startup")
def on_startup():
    init_db()


@app.get("/")
def read_root():
    return {"message": f"{settings.PROJECT_NAME} is running"}


app.include_router(news_router)
app.include_router(weekly_script_router)
app.include_router(quiz_router)
app.include_router(assignment_router)
