"""Mail job payload and producer."""

from pydantic import BaseModel, Field

from shared.queue import MAIL_RETRY_POLICY, JobName, JobQueue, add_job_with_retry


class MailJob(BaseModel):
    to: str
    subject: str
    template: str
    context: dict = Field(default_factory=dict)


def enqueue_mail(queue: JobQueue, mail: MailJob) -> str:
    return add_job_with_retry(queue, JobName.SEND_MAIL, mail.model_dump(), MAIL_RETRY_POLICY)
