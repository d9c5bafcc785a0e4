# Recalculate Ratings Management Command
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Avg, Count

from core.models import Professional, Review


class Command(BaseCommand):
    help = 'Recalculates professional ratings from their reviews to repair drift.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report differences without saving changes to the database.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for bulk processing.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        if batch_size < 1:
            raise CommandError('--batch-size must be a positive integer.')

        changed = self.recalculate_professionals(dry_run, batch_size)

        if dry_run:
            self.stdout.write(self.style.SUCCESS(f'Dry run completed. {changed} professional(s) would change.'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Recalculation completed successfully. {changed} updated.'))

    def recalculate_professionals(self, dry_run, batch_size):
        self.stdout.write('Recalculating professional ratings...')
        professionals = Professional.objects.order_by('pk').iterator(chunk_size=batch_size)
        updates = []
        changed = 0
        count = 0

        for professional in professionals:
            stats = Review.objects.filter(professional=professional).aggregate(
                avg_rating=Avg('rating'),
                total=Count('id')
            )

            raw_avg = stats['avg_rating']
            new_rating = Decimal('0.00') if raw_avg is None else Decimal(str(raw_avg)).quantize(Decimal('0.01'))
            new_count = stats['total'] or 0

            if professional.rating != new_rating or professional.rating_count != new_count:
                changed += 1
                if dry_run:
                    self.stdout.write(
                        f'  [DRY-RUN] Professional {professional.id} ({professional.display_name}): '
                        f'Rating {professional.rating} -> {new_rating}, '
                        f'Count {professional.rating_count} -> {new_count}'
                    )
                professional.rating = new_rating
                professional.rating_count = new_count
                updates.append(professional)

            if len(updates) >= batch_size:
                if not dry_run:
                    Professional.objects.bulk_update(updates, ['rating', 'rating_count'])
                updates = []

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} professionals...')

        if updates and not dry_run:
            Professional.objects.bulk_update(updates, ['rating', 'rating_count'])

        self.stdout.write(f'Processed {count} professionals total.')
        return changed
