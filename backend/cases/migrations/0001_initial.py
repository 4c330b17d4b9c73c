import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

STATUS_CHOICES = [
    ("PENDING", "Pending"),
    ("AWAITING_RESPONSE", "Awaiting Response"),
    ("ACCEPTED", "Accepted"),
    ("WITNESSES_NOMINATED", "Witnesses Nominated"),
    ("PANEL_CREATED", "Panel Created"),
    ("MEDIATION_IN_PROGRESS", "Mediation In Progress"),
    ("RESOLVED", "Resolved"),
    ("UNRESOLVED", "Unresolved"),
    ("CANCELLED", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Case",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("case_number", models.CharField(editable=False, max_length=30, unique=True, verbose_name="Case Number")),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("FAMILY", "Family"),
                            ("BUSINESS", "Business"),
                            ("CRIMINAL", "Criminal"),
                            ("PROPERTY", "Property"),
                            ("CONTRACT", "Contract"),
                            ("OTHER", "Other"),
                        ],
                        db_index=True,
                        max_length=20,
                        verbose_name="Category",
                    ),
                ),
                ("issue_description", models.TextField(verbose_name="Issue Description")),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES,
                        db_index=True,
                        default="PENDING",
                        max_length=30,
                        verbose_name="Current Status",
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[("LOW", "Low"), ("MEDIUM", "Medium"), ("HIGH", "High"), ("URGENT", "Urgent")],
                        default="MEDIUM",
                        max_length=10,
                        verbose_name="Priority",
                    ),
                ),
                ("is_in_court", models.BooleanField(default=False, verbose_name="Pending in Court")),
                ("court_case_number", models.CharField(blank=True, default="", max_length=50)),
                ("court_name", models.CharField(blank=True, default="", max_length=100)),
                ("is_in_police_station", models.BooleanField(default=False, verbose_name="Reported to Police")),
                ("fir_number", models.CharField(blank=True, default="", max_length=50, verbose_name="FIR Number")),
                ("police_station_name", models.CharField(blank=True, default="", max_length=100)),
                ("opposite_party_name", models.CharField(max_length=100, verbose_name="Opposite Party Name")),
                (
                    "opposite_party_email",
                    models.EmailField(
                        blank=True,
                        db_index=True,
                        default="",
                        help_text="Used to link the respondent once they have an account.",
                        max_length=254,
                        verbose_name="Opposite Party Email",
                    ),
                ),
                ("opposite_party_phone", models.CharField(blank=True, default="", max_length=20, verbose_name="Opposite Party Phone")),
                ("opposite_party_address", models.CharField(blank=True, default="", max_length=200, verbose_name="Opposite Party Address")),
                ("respondent_accepted", models.BooleanField(blank=True, null=True, verbose_name="Respondent Accepted")),
                ("respondent_response", models.TextField(blank=True, default="", verbose_name="Respondent Response")),
                ("respondent_responded_at", models.DateTimeField(blank=True, null=True, verbose_name="Responded At")),
                (
                    "complainant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="filed_cases",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Complainant",
                    ),
                ),
                (
                    "respondent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="responded_cases",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Respondent",
                    ),
                ),
            ],
            options={
                "verbose_name": "Case",
                "verbose_name_plural": "Cases",
                "ordering": ["-created_at", "-id"],
                "permissions": [
                    ("can_administer_cases", "Can administer every case (panels, status changes, overrides)"),
                ],
                "indexes": [models.Index(fields=["status", "category"], name="case_status_category_idx")],
            },
        ),
        migrations.CreateModel(
            name="CaseHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("CASE_CREATED", "Case Created"),
                            ("RESPONDENT_LINKED", "Respondent Linked"),
                            ("CASE_ACCEPTED", "Case Accepted"),
                            ("CASE_REJECTED", "Case Rejected"),
                            ("WITNESSES_NOMINATED", "Witnesses Nominated"),
                            ("PANEL_CREATED", "Panel Created"),
                            ("MEDIATION_STARTED", "Mediation Started"),
                            ("CASE_RESOLVED", "Case Resolved"),
                            ("CASE_MARKED_UNRESOLVED", "Case Marked Unresolved"),
                            ("ADMIN_OVERRIDE", "Admin Override"),
                            ("CASE_CANCELLED", "Case Cancelled"),
                            ("EVIDENCE_ADDED", "Evidence Added"),
                            ("WITNESS_STATEMENT_ADDED", "Witness Statement Added"),
                        ],
                        max_length=40,
                        verbose_name="Action",
                    ),
                ),
                ("description", models.TextField(verbose_name="Description")),
                (
                    "previous_status",
                    models.CharField(
                        blank=True, choices=STATUS_CHOICES, default="", max_length=30, verbose_name="Previous Status"
                    ),
                ),
                ("new_status", models.CharField(choices=STATUS_CHOICES, max_length=30, verbose_name="New Status")),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                (
                    "case",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="history",
                        to="cases.case",
                        verbose_name="Case",
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Empty for system-initiated entries.",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="case_actions",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Performed By",
                    ),
                ),
            ],
            options={
                "verbose_name": "Case History Entry",
                "verbose_name_plural": "Case History",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="Evidence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("file", models.FileField(upload_to="case_evidence/%Y/%m/", verbose_name="File")),
                ("original_name", models.CharField(max_length=255, verbose_name="Original File Name")),
                (
                    "file_type",
                    models.CharField(
                        choices=[("IMAGE", "Image"), ("VIDEO", "Video"), ("AUDIO", "Audio"), ("DOCUMENT", "Document")],
                        max_length=10,
                        verbose_name="File Type",
                    ),
                ),
                ("file_size", models.PositiveIntegerField(verbose_name="Size (bytes)")),
                (
                    "case",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="evidence",
                        to="cases.case",
                        verbose_name="Case",
                    ),
                ),
                (
                    "uploaded_by",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="uploaded_evidence",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Uploaded By",
                    ),
                ),
            ],
            options={
                "verbose_name": "Evidence",
                "verbose_name_plural": "Evidence",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="MediationPanel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                (
                    "arbiter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="arbitrated_panels",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Arbiter",
                    ),
                ),
                (
                    "case",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="panel",
                        to="cases.case",
                        verbose_name="Case",
                    ),
                ),
                (
                    "community_advisor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="community_advisor_panels",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Community Advisor",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_panels",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Created By",
                    ),
                ),
                (
                    "religious_advisor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="religious_advisor_panels",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Religious Advisor",
                    ),
                ),
            ],
            options={
                "verbose_name": "Mediation Panel",
                "verbose_name_plural": "Mediation Panels",
            },
        ),
        migrations.CreateModel(
            name="Witness",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("name", models.CharField(max_length=150, verbose_name="Full Name")),
                ("email", models.EmailField(max_length=254, verbose_name="Email")),
                ("phone", models.CharField(blank=True, default="", max_length=20, verbose_name="Phone")),
                (
                    "relationship",
                    models.CharField(default="Nominated Witness", max_length=100, verbose_name="Relationship to Case"),
                ),
                ("statement", models.TextField(blank=True, default="", verbose_name="Statement")),
                ("statement_submitted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "case",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="witnesses",
                        to="cases.case",
                        verbose_name="Case",
                    ),
                ),
                (
                    "nominated_by",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="nominated_witnesses",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Nominated By",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="witness_nominations",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Witness",
                    ),
                ),
            ],
            options={
                "verbose_name": "Witness",
                "verbose_name_plural": "Witnesses",
                "ordering": ["created_at", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("case", "user"), name="unique_witness_per_case"),
                ],
            },
        ),
    ]
