from fastapi import APIRouter

from app.api.v1.endpoints import assignments, employees, health, training_programs

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router)
api_router.include_router(employees.router)
api_router.include_router(training_programs.router)
api_router.include_router(assignments.router)
