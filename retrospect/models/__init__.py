# models package for SQLModel models
from .project import Project, ProjectStatus, ProjectOutcome  # noqa: F401  (import for metadata registration)
from .profile_hours import ProfileHours, Role  # noqa: F401
from .scope_item import ScopeItem, ScopeItemType  # noqa: F401
from .external_cost import ExternalCost, CostType  # noqa: F401
from .change_request import ChangeRequest, ChangeRequestHours  # noqa: F401
from .generation_job import GenerationJob, JobStatus  # noqa: F401
from .assistant import AIConversation, AIEstimate, AIFeedback, Rating, TaskGeneration, TaskTemplate  # noqa: F401
