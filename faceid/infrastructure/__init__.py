from .image_loader import ImageLoader
from .template_store import TemplateStore
from .worker_pool import WorkerPool

__all__ = ["ImageLoader", "TemplateStore", "WorkerPool"]
