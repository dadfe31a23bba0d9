from app.schemas.user import UserRegister, UserResponse, SupabaseWebhookEvent, MessageResponse
from app.schemas.material import MaterialCreate, MaterialResponse, MaterialWithContentResponse
from app.schemas.generated_content import GeneratedContentResponse, QuizQuestion
from app.schemas.chat import ChatTurn, ChatRequest, ChatResponse, SaveChatRequest

__all__ = [
    "UserRegister", "UserResponse", "SupabaseWebhookEvent", "MessageResponse",
    "MaterialCreate", "MaterialResponse", "MaterialWithContentResponse",
    "GeneratedContentResponse", "QuizQuestion",
    "ChatTurn", "ChatRequest", "ChatResponse", "SaveChatRequest",
]
