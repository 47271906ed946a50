"""
Motor de capacidades (estilo CanCan).

Cada actor recibe una lista ordenada de reglas ``Rule`` (concesiones y
denegaciones). Se evalúan desde la última añadida hacia la primera y decide la
primera que encaja con la acción, el tipo de recurso y su condición, así que un
``cannot`` declarado después de un ``can`` lo anula.

Las condiciones de propiedad (``post.author_id == actor.id``) son predicados
que reciben la instancia concreta. Sin instancia (comprobación por tipo) una
concesión condicional cuenta como válida y una denegación condicional se ignora.
"""
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from app.core.errors import ContractViolation
from app.models.group import Group
from app.models.post import Post
from app.models.user import Tier
from app.services.identity import IdentityFacts, IdentityFactsProvider

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    MANAGE = "manage"  # cualquier acción
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class ResourceType(str, enum.Enum):
    GROUP = "group"
    POST = "post"


RESOURCE_CLASSES: dict[ResourceType, type] = {
    ResourceType.GROUP: Group,
    ResourceType.POST: Post,
}

Condition = Callable[[Any, Any], bool]


@dataclass(frozen=True)
class Rule:
    allow: bool
    action: Action
    subject: Optional[ResourceType]  # None = todos los tipos
    condition: Optional[Condition] = field(default=None, compare=False)
    label: str = ""

    def relevant(self, action: Action, resource_type: ResourceType) -> bool:
        if self.action != Action.MANAGE and self.action != action:
            return False
        return self.subject is None or self.subject == resource_type

    def applies(self, actor, resource) -> bool:
        if self.condition is None:
            return True
        if resource is None:
            return self.allow
        return bool(self.condition(actor, resource))

    def __str__(self) -> str:
        verb = "can" if self.allow else "cannot"
        subject = self.subject.value if self.subject else "all"
        text = f"{verb} {self.action.value} {subject}"
        return f"{text} ({self.label})" if self.label else text


@dataclass(frozen=True)
class Decision:
    allowed: bool
    rule: Optional[Rule]
    facts: IdentityFacts

    @property
    def reason(self) -> str:
        if self.rule is None:
            return f"no rule matches for tier={self.facts.tier.value} admin={self.facts.is_admin}"
        return str(self.rule)


def _is_author(actor, post) -> bool:
    return post.author_id == actor.id


class Ability:
    """Conjunto de reglas de un actor."""

    def __init__(self):
        self.rules: list[Rule] = []

    def can(self, action, subject=None, condition=None, label=""):
        self.rules.append(Rule(True, action, subject, condition, label))

    def cannot(self, action, subject=None, condition=None, label=""):
        self.rules.append(Rule(False, action, subject, condition, label))

    def decide(self, actor, action, resource_type, resource=None) -> tuple[bool, Optional[Rule]]:
        for rule in reversed(self.rules):
            if rule.relevant(action, resource_type) and rule.applies(actor, resource):
                return rule.allow, rule
        return False, None

    @classmethod
    def for_facts(cls, facts: IdentityFacts) -> "Ability":
        ability = cls()

        if facts.is_admin:
            ability.can(Action.MANAGE)
            return ability

        if facts.tier == Tier.BASIC:
            ability.can(Action.MANAGE, ResourceType.GROUP)
            ability.can(Action.MANAGE, ResourceType.POST, _is_author, "author")
            ability.can(Action.CREATE, ResourceType.POST, _is_author, "author")
            ability.cannot(Action.CREATE, ResourceType.GROUP)
        elif facts.tier == Tier.PREMIUM:
            ability.can(Action.MANAGE, ResourceType.GROUP)
            ability.can(Action.MANAGE, ResourceType.POST, _is_author, "author")
            ability.can(Action.CREATE, ResourceType.POST, _is_author, "author")
            ability.can(Action.CREATE, ResourceType.GROUP)
        else:
            ability.can(Action.MANAGE, ResourceType.POST, _is_author, "author")
            ability.can(Action.CREATE, ResourceType.POST, _is_author, "author")
            ability.can(Action.READ)

        return ability


class AuthorizationEngine:
    def __init__(self, identity: IdentityFactsProvider):
        self.identity = identity

    def explain(self, actor, action, resource_type, resource=None) -> Decision:
        action, resource_type = _check_request(action, resource_type, resource)

        # una sola lectura de tier/admin por decisión
        facts = self.identity.facts(actor.id)
        allowed, rule = Ability.for_facts(facts).decide(actor, action, resource_type, resource)

        decision = Decision(allowed=allowed, rule=rule, facts=facts)
        logger.debug(
            "authz user=%s action=%s resource=%s id=%s -> %s (%s)",
            actor.id,
            action.value,
            resource_type.value,
            getattr(resource, "id", None),
            "allow" if allowed else "deny",
            decision.reason,
        )
        return decision

    def can_perform(self, actor, action, resource_type, resource=None) -> bool:
        return self.explain(actor, action, resource_type, resource).allowed


def _check_request(action, resource_type, resource):
    try:
        action = Action(action)
        resource_type = ResourceType(resource_type)
    except ValueError as exc:
        raise ContractViolation(str(exc)) from exc

    if resource is not None and not isinstance(resource, RESOURCE_CLASSES[resource_type]):
        raise ContractViolation(
            f"resource {type(resource).__name__} does not match resource type {resource_type.value}"
        )
    return action, resource_type
