from .user import Identity, Profile, ROLE_ADMIN, ROLE_USER, DEFAULT_EMPLOYEE_TYPE  # noqa: F401
from .catalog import ProjectPreset, EmployeeTypeSetting  # noqa: F401
from .record import WorkRecord  # noqa: F401
