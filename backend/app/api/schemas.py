from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response from the health check endpoint."""

    status: str
    version: str
    database_connected: bool


class ContestClient(BaseModel):
    name: str
    rating: float


class ContestResponse(BaseModel):
    """A contest as shown on the listings page."""

    id: str
    title: str
    description: str | None = None
    budget: str
    deadline: str = Field(description="Human-readable time left, e.g. '3 days'")
    submissions: int
    category: str | None = None
    client: ContestClient | None = None


class FreelancerResponse(BaseModel):
    """A freelancer card in the directory."""

    id: str
    name: str
    title: str
    rating: float
    completed_projects: int = Field(serialization_alias="completedProjects")
    hourly_rate: str = Field(serialization_alias="hourlyRate")
    skills: list[str]
    avatar: str


class PageResponse(BaseModel):
    """Placeholder for a rendered page: which page, and who is viewing it."""

    page: str
    user_id: str | None = None
    role: str | None = None
