from perfeval.models.audit_event import AuditEvent
from perfeval.models.criteria import Criteria, CriteriaCategory, RoleCriteriaDescription
from perfeval.models.department import Department
from perfeval.models.evaluation import Comment, Evaluation, EvaluationScore, EvaluationStatus
from perfeval.models.rbac import PROTECTED_ROLE_NAMES, Role, RoleAssignment
from perfeval.models.team import EvaluatorAssignment, Team
from perfeval.models.user import User

__all__ = [ "AuditEvent", "Comment", "Criteria", "CriteriaCategory",
           "Department", "Evaluation", "EvaluationScore", "EvaluationStatus",
           "EvaluatorAssignment", "PROTECTED_ROLE_NAMES", "Role", "RoleAssignment",
           "RoleCriteriaDescription", "Team", "User" ]
