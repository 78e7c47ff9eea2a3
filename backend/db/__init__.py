# Database utilities package
from .sql import (
    SQLDateParamError,
    SQLParamStyleError,
    run_sql,
    run_sql_scalar,
    run_sql_one,
    validate_sql_params,
)
