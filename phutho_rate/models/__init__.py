from phutho_rate.models.agency import Agency
from phutho_rate.models.audit_event import AuditEvent
from phutho_rate.models.evaluation import Evaluation
from phutho_rate.models.evaluation_cycle import EvaluationCycle
from phutho_rate.models.user import User

__all__ = [ "Agency", "AuditEvent", "Evaluation",
           "EvaluationCycle", "User" ]
