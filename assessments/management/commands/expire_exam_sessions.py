from django.core.management.base import BaseCommand

from assessments.services.sessions import expire_overdue_sessions


class Command(BaseCommand):
    help = 'Completes in-progress exam sessions whose time (plus grace period) has run out'

    def handle(self, *args, **options):
        expired = expire_overdue_sessions()
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} exam session(s)"))
