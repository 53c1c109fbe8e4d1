from app.jobs import RecalcJobRunner

_runner = RecalcJobRunner()


def get_job_runner() -> RecalcJobRunner:
    return _runner
