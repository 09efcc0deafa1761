# Import all models here so SQLAlchemy can resolve relationships and create every table
from app.api.audit_log.models import AdminCheckInAudit
from app.api.check_in.models import CheckInSession
from app.api.events.models import Event
from app.api.organizations.models import Organization
from app.api.registrations.models import Registration
from app.api.volunteer_hours.models import VolunteerHours

__all__ = [
    'AdminCheckInAudit',
    'CheckInSession',
    'Event',
    'Organization',
    'Registration',
    'VolunteerHours',
]
