from .obs_service import OBSService, OBS_AVAILABLE

__all__ = ["OBSService", "OBS_AVAILABLE"]
