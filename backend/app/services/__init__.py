"""Service modules."""

# Export supplier API services
from app.services.supplier_client import supplier_client
from app.services.host_limiter import host_limiter

# Export connection persistence
from app.services.connection_service import connection_service

# Export import state persistence
from app.services.import_configuration_service import import_configuration_service
from app.services.temp_data_service import temp_data_service
