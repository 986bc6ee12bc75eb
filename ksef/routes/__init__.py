"""
ksef/routes/__init__.py
Route registration
"""
from fastapi import APIRouter
from ksef.routes import users, projects, assignments, scores, rankings

router = APIRouter()

router.include_router(users.router)
router.include_router(projects.router)
router.include_router(assignments.router)
router.include_router(scores.router)
router.include_router(rankings.router)
