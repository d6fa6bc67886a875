from vetstore.services.vetting import CommentDraft, DependencyReviews, VettingService

__all__ = ["CommentDraft", "DependencyReviews", "VettingService"]
