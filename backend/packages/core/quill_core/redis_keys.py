"""Redis key templates and task names.

Centralized management of task queue identifiers used by the API and the
worker, so both sides agree on names and deduplication keys.
"""


class RedisKeys:
    """Redis key templates and helper methods."""

    # ============================================================================
    # Translation Task Names
    # ============================================================================

    PROCESS_TRANSLATIONS_TASK = "process_article_translations_task"
    RETRY_TRANSLATIONS_TASK = "retry_article_translations_task"
    RETRY_FAILED_TRANSLATIONS_TASK = "retry_failed_translations_task"
    TRANSLATE_ARTICLES_TASK = "translate_articles_task"
    CLEANUP_TRANSLATION_JOBS_TASK = "cleanup_translation_jobs_task"

    # ============================================================================
    # Translation Job IDs
    # ============================================================================

    # Deferred retry of the languages one run failed
    # Format: translation_retry:{article_id}:{run_id}
    # Keyed by the run, so each run gets its own retry and a redelivered
    # run does not queue a second one.
    @staticmethod
    def translation_retry_job(article_id: str, run_id: str) -> str:
        """
        Get the arq job id for a run's deferred translation retry.

        Args:
            article_id: Article UUID.
            run_id: Job id of the run whose failures are retried.

        Returns:
            Job id string.
        """
        return f"translation_retry:{article_id}:{run_id}"
