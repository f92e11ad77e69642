"""Daily admin digest."""
from .daily_digest import DailyDigestJob, compute_window, render_digest_html, DIGEST_SUBJECT

__all__ = ["DailyDigestJob", "compute_window", "render_digest_html", "DIGEST_SUBJECT"]
