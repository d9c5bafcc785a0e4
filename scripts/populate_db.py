import os
import sys
import random
from datetime import timedelta
from decimal import Decimal

import django
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'services_marketplace.settings')
django.setup()

from django.utils import timezone  # noqa: E402

from core.lifecycle import create_hire, transition_hire  # noqa: E402
from core.models import AuthenticatedClient, GuestClient, Hire, Professional, User  # noqa: E402
from core.reviews import submit_client_review, submit_review  # noqa: E402

fake = Faker('es_ES')

PROFESSIONS = ['Plomero', 'Electricista', 'Carpintero', 'Pintor', 'Jardinero', 'Limpieza', 'Mudanzas']

CITIES = {
    'Montevideo': ['Pocitos', 'Cordón', 'Centro', 'Malvín', 'Buceo'],
    'Canelones': ['Las Piedras', 'Pando'],
    'Maldonado': ['Punta del Este', 'San Carlos'],
}

# Status each seeded hire is walked to, with the acting party per step
PATHS = {
    'pending': [],
    'accepted': ['accepted'],
    'rejected': ['rejected'],
    'in_progress': ['accepted', 'in_progress'],
    'waiting_client_approval': ['accepted', 'in_progress', 'waiting_client_approval'],
    'completed': ['accepted', 'in_progress', 'waiting_client_approval', 'completed'],
    'cancelled': ['cancelled'],
}


def _phone():
    return f"09{random.randint(1, 9)} {random.randint(100, 999)} {random.randint(100, 999)}"


def create_users(num_clients=10, num_professionals=8):
    print(f"Creating {num_clients} clients and {num_professionals} professionals...")

    clients = []
    professionals = []

    for _ in range(num_clients):
        email = fake.unique.email()
        user = User.objects.create_user(
            username=email,
            email=email,
            password='password123',
            full_name=fake.name(),
            phone_number=_phone(),
        )
        clients.append(user)

    now = timezone.now()
    for _ in range(num_professionals):
        email = fake.unique.email()
        user = User.objects.create_user(
            username=email,
            email=email,
            password='password123',
            full_name=fake.name(),
            phone_number=_phone(),
            is_professional=True,
        )
        city = random.choice(list(CITIES))
        premium = random.random() < 0.3
        professional = Professional.objects.create(
            user=user,
            display_name=user.full_name,
            profession=random.choice(PROFESSIONS),
            city=city,
            state=city,
            barrio=random.choice(CITIES[city]),
            bio=fake.paragraph(),
            hourly_rate=Decimal(random.uniform(300.0, 1500.0)).quantize(Decimal('0.01')),
            phone=user.phone_number,
            is_premium=premium,
            # Some premium flags are deliberately expired
            subscription_end_date=now + timedelta(days=random.randint(-30, 60)) if premium else None,
        )
        professionals.append(professional)

    print(f"Created {len(clients)} clients and {len(professionals)} professionals.")
    return clients, professionals


def _walk(hire, target_status):
    client = hire.client
    professional_user = hire.professional.user if hire.professional_id else None
    for step in PATHS[target_status]:
        actor = client if step in ('completed', 'cancelled') else professional_user
        transition_hire(hire, step, actor)
    return hire


def create_hires(clients, professionals):
    print("Creating hires...")
    hires = []

    for client in clients:
        for _ in range(random.randint(0, 3)):
            professional = random.choice(professionals)
            hire = create_hire(
                AuthenticatedClient(client_id=client.id),
                professional.profession,
                fake.text(max_nb_chars=200).ljust(20, '.'),
                professional=professional,
                service_location=f"{professional.city}, {professional.state}",
            )
            hires.append(_walk(hire, random.choice(list(PATHS))))

        # Open requests
        if random.random() < 0.3:
            hires.append(create_hire(
                AuthenticatedClient(client_id=client.id),
                random.choice(PROFESSIONS),
                fake.text(max_nb_chars=200).ljust(20, '.'),
                service_location='Montevideo, Montevideo',
            ))

    for _ in range(5):
        professional = random.choice(professionals)
        hires.append(create_hire(
            GuestClient(name=fake.name(), email=fake.unique.email(), phone=_phone()),
            professional.profession,
            fake.text(max_nb_chars=200).ljust(20, '.'),
            professional=professional,
            service_location=f"{professional.city}, {professional.state}",
        ))

    print(f"Created {len(hires)} hires.")
    return hires


def create_reviews(hires):
    print("Creating reviews...")
    reviews = []

    for hire in hires:
        # 70% chance of leaving a review
        if hire.status == Hire.Status.COMPLETED and hire.client_id and random.random() < 0.7:
            reviews.append(submit_review(hire.pk, random.randint(3, 5), fake.sentence(), actor=hire.client))

    print(f"Created {len(reviews)} reviews.")
    return reviews


def create_client_reviews(hires):
    print("Creating client reviews...")
    rated = set()

    for hire in hires:
        pair = (hire.professional_id, hire.client_id)
        if hire.status not in Hire.CONTACT_VISIBLE_STATUSES or not hire.client_id or pair in rated:
            continue
        if random.random() < 0.5:
            submit_client_review(hire.client_id, random.randint(3, 5), fake.sentence(), actor=hire.professional.user)
            rated.add(pair)

    print(f"Created {len(rated)} client reviews.")


def main():
    print("Starting database population...")

    clients, professionals = create_users(num_clients=20, num_professionals=12)
    hires = create_hires(clients, professionals)
    create_reviews(hires)
    create_client_reviews(hires)

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
