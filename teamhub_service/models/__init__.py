from .calendar import (
    Meal,
    MealPlan,
    MealPlanAssignment,
    MealPlanItem,
    ScheduleEvent,
    TrainingDay,
    TrainingExercise,
    TrainingProgram,
    TrainingProgramAssignment,
)
from .directory import PerformanceStat, PlayerProfile, Team, TeamMembership, User, UserContact
from .knowledge import AIConversation, AIMessage, ArticleView, KnowledgeArticle, KnowledgeCategory
from .messaging import Conversation, ConversationParticipant, Message, MessageRead
from .storage import StoredObject

__all__ = [
    "User",
    "PlayerProfile",
    "UserContact",
    "Team",
    "TeamMembership",
    "PerformanceStat",
    "Conversation",
    "ConversationParticipant",
    "Message",
    "MessageRead",
    "ScheduleEvent",
    "TrainingProgram",
    "TrainingDay",
    "TrainingExercise",
    "TrainingProgramAssignment",
    "Meal",
    "MealPlan",
    "MealPlanItem",
    "MealPlanAssignment",
    "KnowledgeCategory",
    "KnowledgeArticle",
    "ArticleView",
    "AIConversation",
    "AIMessage",
    "StoredObject",
]
