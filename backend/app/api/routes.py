from fastapi import APIRouter, Request

from app.api.schemas import ContestResponse, FreelancerResponse, HealthResponse

router = APIRouter()

# Static listings until contests and freelancers have real storage
CONTESTS = [
    {
        "id": "1",
        "title": "UI Design Challenge",
        "description": "Design a modern dashboard UI for a fintech app.",
        "budget": "$500",
        "deadline": "3 days",
        "submissions": 12,
        "category": "Design",
        "client": {"name": "Acme Corp", "rating": 4.9},
    },
    {
        "id": "2",
        "title": "Landing Page Redesign",
        "description": "Redesign the landing page for a SaaS product.",
        "budget": "$300",
        "deadline": "7 days",
        "submissions": 8,
        "category": "Web Development",
        "client": {"name": "Beta LLC", "rating": 4.7},
    },
    {
        "id": "3",
        "title": "Logo for Startup",
        "description": "Create a unique logo for a new tech startup.",
        "budget": "$200",
        "deadline": "24 hours",
        "submissions": 20,
        "category": "Design",
        "client": {"name": "Gamma Start", "rating": 5.0},
    },
]

FREELANCERS = [
    {
        "id": "1",
        "name": "Jane Doe",
        "title": "UI/UX Designer",
        "rating": 4.9,
        "completed_projects": 32,
        "hourly_rate": "$40",
        "skills": ["UI Design", "Figma", "Prototyping"],
        "avatar": "/placeholder-user.jpg",
    },
    {
        "id": "2",
        "name": "John Smith",
        "title": "Full Stack Developer",
        "rating": 4.8,
        "completed_projects": 27,
        "hourly_rate": "$50",
        "skills": ["React", "Node.js", "TypeScript"],
        "avatar": "/placeholder-user.jpg",
    },
    {
        "id": "3",
        "name": "Emily Chen",
        "title": "Content Writer",
        "rating": 4.7,
        "completed_projects": 19,
        "hourly_rate": "$30",
        "skills": ["Writing", "SEO", "Editing"],
        "avatar": "/placeholder-user.jpg",
    },
]


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Check API health and database status."""
    return HealthResponse(
        status="healthy",
        version=request.app.version,
        database_connected=request.app.state.database.is_open,
    )


@router.get("/contests", response_model=list[ContestResponse])
async def list_contests():
    return CONTESTS


@router.get("/freelancers", response_model=list[FreelancerResponse])
async def list_freelancers():
    return FREELANCERS
