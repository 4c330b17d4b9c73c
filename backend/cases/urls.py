"""
Cases app URL configuration.

All routes are registered under the ``/api/cases/`` prefix.

Route Hierarchy
---------------
  /api/cases/                              → list / create
  /api/cases/{id}/                         → retrieve
  GET  /api/cases/statistics/              → admin dashboard counts

  ── Party @actions ──────────────────────────────────────────────
  POST /api/cases/{id}/respond/            → respondent accepts / declines
  GET  /api/cases/{id}/witnesses/
  POST /api/cases/{id}/witnesses/          → parties nominate witnesses
  POST /api/cases/{id}/witness-statement/  → witness records statement
  GET  /api/cases/{id}/evidence/
  POST /api/cases/{id}/evidence/           → parties attach a file
  POST /api/cases/{id}/cancel/             → complainant / admin cancels
  GET  /api/cases/{id}/history/            → audit trail, oldest first

  ── Administrator @actions ──────────────────────────────────────
  POST /api/cases/{id}/panel/
  POST /api/cases/{id}/begin-mediation/
  POST /api/cases/{id}/resolve/
  POST /api/cases/{id}/mark-unresolved/
  POST /api/cases/{id}/status/             → unconstrained override
  POST /api/cases/{id}/link-respondent/
"""

from rest_framework.routers import DefaultRouter

from .views import CaseViewSet

router = DefaultRouter()
router.register(
    prefix=r"cases",
    viewset=CaseViewSet,
    basename="case",
)

urlpatterns = router.urls
