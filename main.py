from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from app.api.audit_log.routes import router as audit_log_router
from app.api.check_in.routes import router as check_in_router
from app.api.events.routes import router as events_router
from app.api.organizations.routes import router as organizations_router
from app.api.registrations.routes import router as registrations_router
from app.api.volunteer_hours.routes import router as volunteer_hours_router
from app.core.config import Environment, settings
from app.core.database import create_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENVIRONMENT != Environment.TEST:
        create_db()
    yield


app = FastAPI(lifespan=lifespan)

# Include routers
app.include_router(audit_log_router, prefix='/audit-log', tags=['Audit Log'])
app.include_router(check_in_router, prefix='/check-in', tags=['Check In'])
app.include_router(events_router, prefix='/events', tags=['Events'])
app.include_router(
    organizations_router, prefix='/organizations', tags=['Organizations']
)
app.include_router(
    registrations_router, prefix='/registrations', tags=['Registrations']
)
app.include_router(
    volunteer_hours_router, prefix='/volunteer-hours', tags=['Volunteer Hours']
)

origins = ['*']
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.get('/', include_in_schema=False)
def ping():
    return Response(status_code=200)
