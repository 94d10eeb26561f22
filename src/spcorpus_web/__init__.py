"""Flask inspection UI/API over a loaded TrainingPipeline."""
from .web import app

__all__ = ["app"]
