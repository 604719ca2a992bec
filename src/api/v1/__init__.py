"""
API v1 routes.
"""

from fastapi import APIRouter

from src.api.v1 import projects, groups, tasks, comments, files, activity

router = APIRouter()

router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(groups.router, tags=["Groups"])
router.include_router(tasks.router, tags=["Tasks"])
router.include_router(comments.router, tags=["Comments"])
router.include_router(files.router, tags=["Files"])
router.include_router(activity.router, tags=["Activity"])
