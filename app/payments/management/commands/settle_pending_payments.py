"""
Management command to force-settle every pending payment.

Operator escape hatch for payments stuck in pending while the gateway
confirmation path was down. It does not ask the gateway: check the gateway
dashboard first. Refuses to run without --yes-i-understand.
"""

from django.core.management.base import BaseCommand, CommandError

from payments.services import PaymentLedger, ReconciliationCoordinator


class Command(BaseCommand):
    help = "Mark every pending payment as succeeded and re-resolve project statuses"

    def add_arguments(self, parser):
        parser.add_argument(
            "--yes-i-understand",
            action="store_true",
            help="Confirm that pending payments are settled without gateway verification",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List pending payments without changing anything",
        )

    def handle(self, *args, **options):
        pending = list(PaymentLedger.pending())

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING("=== DRY RUN MODE ==="))
            for payment in pending:
                self.stdout.write(
                    f"  {payment.pk}  project={payment.project_id}  "
                    f"{payment.payment_type}  {payment.amount_cents} {payment.currency}"
                )
            self.stdout.write(f"{len(pending)} pending payment(s)")
            return

        if not options["yes_i_understand"]:
            raise CommandError(
                "This settles payments without asking the gateway. "
                "Re-run with --yes-i-understand once the gateway dashboard has been checked."
            )

        if not pending:
            self.stdout.write("No pending payments")
            return

        result = ReconciliationCoordinator().reconcile_all_pending()

        self.stdout.write(
            self.style.SUCCESS(
                f"Settled {len(result.settled)} payment(s), "
                f"resolved {len(result.resolutions)} project(s)"
            )
        )
        if result.failed:
            self.stdout.write(
                self.style.ERROR(
                    "Could not settle: " + ", ".join(str(pk) for pk in result.failed)
                )
            )
        if result.unresolved_projects:
            self.stdout.write(
                self.style.ERROR(
                    "Could not resolve projects: "
                    + ", ".join(str(pk) for pk in result.unresolved_projects)
                )
            )
