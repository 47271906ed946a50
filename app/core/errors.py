class CoreError(Exception):
    """Base de los errores del núcleo de grupos/permisos."""


class PersistenceError(CoreError):
    """Fallo del almacenamiento: se propaga al llamador, no se reintenta aquí."""


class ContractViolation(CoreError, ValueError):
    """Entrada inválida (acción desconocida, recurso que no casa con su tipo...)."""
