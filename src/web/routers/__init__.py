"""
FastAPI Routers - one module per resource.

Router modules:
- clients: client companies and client drafts
- positions: positions, assignments and position drafts
- jobseekers: jobseeker profiles and candidate matching
- timesheets: single-jobseeker timesheets
- bulk_timesheets: multi-jobseeker timesheets
- reports: JSON / CSV reports
- activities: recent activity feed
- health: health checks
"""

from .activities import router as activities_router
from .bulk_timesheets import router as bulk_timesheets_router
from .clients import router as clients_router
from .health import router as health_router
from .jobseekers import router as jobseekers_router
from .positions import router as positions_router
from .reports import router as reports_router
from .timesheets import router as timesheets_router

__all__ = [
    "activities_router",
    "bulk_timesheets_router",
    "clients_router",
    "health_router",
    "jobseekers_router",
    "positions_router",
    "reports_router",
    "timesheets_router",
]
