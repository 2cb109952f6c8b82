from credverify.verification.review_queue.service import (
    ManualReviewQueue,
    describe_sla,
    verify_admin_token,
)

__all__ = ["ManualReviewQueue", "describe_sla", "verify_admin_token"]
