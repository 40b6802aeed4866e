"""API services."""

from ammapi.services.adapter_service import AdapterServiceManager, AdapterServiceUnavailable, adapter_service_manager

__all__ = ["AdapterServiceManager", "AdapterServiceUnavailable", "adapter_service_manager"]
