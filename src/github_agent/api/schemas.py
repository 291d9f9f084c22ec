"""
API schemas for GitHub Agent.

Pydantic models for request/response validation. Request bodies accept
the camelCase field names the dashboard sends as well as snake_case.
"""

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from github_agent.config import settings

# ===== Response Schemas =====


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class RepositoryRef(ORMModel):
    """Short repository info embedded in other responses."""

    id: UUID
    name: str
    full_name: str
    html_url: str


class RepositoryResponse(ORMModel):
    id: UUID
    github_id: int
    name: str
    full_name: str
    description: Optional[str] = None
    private: bool
    html_url: str
    clone_url: str
    language: Optional[str] = None
    languages: dict[str, Any] = Field(default_factory=dict)
    topics: list[str] = Field(default_factory=list)
    stars: int
    forks: int
    open_issues: int
    default_branch: str
    last_commit_sha: Optional[str] = None
    last_commit_date: Optional[datetime] = None
    tech_stack: dict[str, Any] = Field(default_factory=dict)
    analysis_summary: Optional[str] = None
    last_analyzed: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TodoItemResponse(ORMModel):
    id: UUID
    todo_list_id: UUID
    title: str
    description: Optional[str] = None
    completed: bool
    status: str
    priority: str
    assignee: Optional[str] = None
    labels: list[str] = Field(default_factory=list)
    github_issue_url: Optional[str] = None
    estimated_hours: Optional[int] = None
    actual_hours: Optional[int] = None
    category: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TodoListResponse(ORMModel):
    id: UUID
    repository_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    priority: str
    status: str
    due_date: Optional[datetime] = None
    auto_generated: bool
    created_at: datetime
    updated_at: datetime
    repository: Optional[RepositoryRef] = None
    items: list[TodoItemResponse] = Field(default_factory=list)


class RecapResponse(ORMModel):
    id: UUID
    repository_id: Optional[UUID] = None
    title: str
    summary: str
    period: Optional[str] = None
    key_updates: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    metrics: dict[str, Any] = Field(default_factory=dict)
    date_range: dict[str, Any] = Field(default_factory=dict)
    generated_by: str
    meeting_ready: bool
    period_start: datetime
    period_end: datetime
    generated_at: datetime
    created_at: datetime
    repository: Optional[RepositoryRef] = None


class ReportResponse(ORMModel):
    id: UUID
    repository_id: UUID
    title: str
    summary: Optional[str] = None
    commit_summary: dict[str, Any] = Field(default_factory=dict)
    issue_summary: dict[str, Any] = Field(default_factory=dict)
    pull_request_summary: dict[str, Any] = Field(default_factory=dict)
    performance_metrics: dict[str, Any] = Field(default_factory=dict)
    recommendations: list[str] = Field(default_factory=list)
    period_start: datetime
    period_end: datetime
    generated_at: datetime
    email_sent: bool
    email_sent_at: Optional[datetime] = None
    recipients: list[str] = Field(default_factory=list)
    created_at: datetime
    repository: Optional[RepositoryRef] = None


class ApiKeyResponse(ORMModel):
    id: UUID
    name: str
    key_prefix: str
    is_active: bool
    last_used_at: Optional[datetime] = None
    request_count: int
    created_at: datetime


class WebhookResponse(ORMModel):
    id: UUID
    project_id: Optional[UUID] = None
    url: str
    events: list[str] = Field(default_factory=list)
    is_active: bool
    last_delivery_at: Optional[datetime] = None
    last_status: Optional[int] = None
    created_at: datetime


def dump(schema: type[BaseModel], obj: Any) -> dict[str, Any]:
    """Serialize an ORM row through a response schema into JSON-safe data."""
    return schema.model_validate(obj).model_dump(mode="json")


# ===== Request Schemas =====


class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AnalyzeRepositoryRequest(RequestModel):
    repository_id: Optional[str] = Field(default=None, alias="repositoryId")
    analysis_type: Optional[str] = Field(default=None, alias="analysisType")


class RepositoryAnalysisRequest(RequestModel):
    repository_id: Optional[str] = Field(default=None, alias="repositoryId")
    github_url: Optional[str] = None
    force_refresh: bool = False


class RecapCreate(RequestModel):
    repository_id: Optional[str] = Field(default=None, alias="repositoryId")
    time_range: str = Field(default="week", alias="timeRange")


class TodoItemInput(BaseModel):
    title: str
    description: Optional[str] = ""
    priority: str = "medium"


class TodoCreate(RequestModel):
    type: Optional[str] = None
    repository_id: Optional[str] = Field(default=None, alias="repositoryId")
    title: Optional[str] = None
    description: Optional[str] = None
    items: list[TodoItemInput] = Field(default_factory=list)


class TodoListUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    due_date: Optional[datetime] = None


class TodoItemCreate(BaseModel):
    todo_list_id: UUID
    title: str
    description: Optional[str] = ""
    priority: str = "medium"


class TodoItemUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assignee: Optional[str] = None
    labels: Optional[list[str]] = None
    category: Optional[str] = None
    estimated_hours: Optional[int] = None
    actual_hours: Optional[int] = None


class ReportGenerateRequest(RequestModel):
    repository_id: Optional[str] = Field(default=None, alias="repositoryId")
    period_start: Optional[datetime] = Field(default=None, alias="periodStart")
    period_end: Optional[datetime] = Field(default=None, alias="periodEnd")


class ReportEmailRequest(ReportGenerateRequest):
    report_id: Optional[str] = Field(default=None, alias="reportId")
    recipients: list[str] = Field(default_factory=list)
    custom_subject: Optional[str] = Field(default=None, alias="customSubject")


class SMTPAuth(BaseModel):
    user: str
    # "pass" is a keyword
    password: str = Field(alias="pass")


class SMTPInput(BaseModel):
    host: str
    port: int = 587
    secure: bool = False
    auth: SMTPAuth


class SenderInput(BaseModel):
    name: str = "GitHub Helper"
    email: str


class BrandingInput(RequestModel):
    logo_url: Optional[str] = Field(default=None, alias="logoUrl")
    company_name: Optional[str] = Field(default=None, alias="companyName")
    primary_color: Optional[str] = Field(default=None, alias="primaryColor")


class EmailSettingsRequest(BaseModel):
    smtp: SMTPInput
    sender: SenderInput
    branding: BrandingInput = Field(default_factory=BrandingInput)


class SMTPTestRequest(BaseModel):
    host: Optional[str] = None
    port: Optional[int] = None
    secure: bool = False
    auth: Optional[dict[str, str]] = None


class SlackSettingsRequest(RequestModel):
    user_id: Optional[str] = Field(default=None, alias="userId")
    bot_name: Optional[str] = Field(default=None, alias="botName")
    app_name: Optional[str] = Field(default=None, alias="appName")
    description: Optional[str] = None
    features: Optional[dict[str, bool]] = None
    scopes: Optional[list[str]] = None
    bot_token: Optional[str] = Field(default=None, alias="botToken")
    signing_secret: Optional[str] = Field(default=None, alias="signingSecret")
    client_id: Optional[str] = Field(default=None, alias="clientId")
    client_secret: Optional[str] = Field(default=None, alias="clientSecret")
    verification_token: Optional[str] = Field(default=None, alias="verificationToken")


class ChatRequest(RequestModel):
    message: Optional[str] = None
    repository_id: Optional[str] = Field(default=None, alias="repositoryId")
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    user_id: Optional[str] = Field(default=None, alias="userId")


class PasswordRequest(BaseModel):
    password: Optional[str] = None


class IntegrationRequest(RequestModel):
    type: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    user_email: Optional[str] = Field(default=None, alias="userEmail")
    details: Optional[str] = None
    timestamp: Optional[datetime] = None


class ApiKeyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


# ===== /api/v1 Request Schemas =====
# Required fields are optional here so that missing values produce the
# documented v1 error codes rather than a generic validation error.


class ProjectCreate(BaseModel):
    github_url: Optional[str] = None
    auto_analyze: bool = True


class V1TodoItemInput(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: str = "medium"
    status: str = "pending"
    estimated_hours: Optional[int] = None
    category: str = "development"


class V1TodoCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    project_id: Optional[str] = None
    items: list[V1TodoItemInput] = Field(default_factory=list)
    ai_generate: bool = False
    context_prompt: Optional[str] = None


class V1RecapCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: Optional[str] = None
    period: Literal["daily", "weekly", "monthly", "quarterly"] = "weekly"
    custom_context: Optional[str] = None
    include_commits: bool = True
    include_issues: bool = True
    include_prs: bool = True
    output_format: str = Field(default="markdown", alias="format")


class V1ChatRequest(BaseModel):
    message: Optional[str] = None
    project_id: Optional[str] = None
    conversation_id: Optional[str] = None
    context: Optional[str] = None
    model: Optional[str] = None
    temperature: float = Field(
        default_factory=lambda: settings.llm_temperature, ge=0.0, le=2.0
    )
    stream: bool = False


class WebhookCreate(BaseModel):
    url: Optional[str] = None
    events: Optional[list[str]] = None
    secret: Optional[str] = None
    project_id: Optional[str] = None
    active: bool = True
