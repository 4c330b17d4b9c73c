from django.contrib import admin

from .models import Case, CaseHistory, Evidence, MediationPanel, Witness


class WitnessInline(admin.TabularInline):
    model = Witness
    extra = 0
    fk_name = "case"


class MediationPanelInline(admin.StackedInline):
    model = MediationPanel
    extra = 0
    fk_name = "case"


class EvidenceInline(admin.TabularInline):
    model = Evidence
    extra = 0


class CaseHistoryInline(admin.TabularInline):
    model = CaseHistory
    extra = 0
    can_delete = False
    readonly_fields = ("action", "description", "performed_by", "previous_status",
                       "new_status", "metadata", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Case)
class CaseAdmin(admin.ModelAdmin):
    list_display = ("case_number", "category", "status", "priority",
                    "complainant", "respondent", "created_at")
    list_filter = ("status", "category", "priority")
    search_fields = ("case_number", "issue_description", "opposite_party_name")
    readonly_fields = ("case_number",)
    inlines = [WitnessInline, MediationPanelInline, EvidenceInline,
               CaseHistoryInline]
