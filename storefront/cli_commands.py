"""
Flask CLI commands for database and user management.

Commands:
- flask init-db: Create all tables
- flask seed-db: Load demo users and products
- flask create-admin: Create a new ADMIN user
"""
import re
from decimal import Decimal

import click

from storefront.database import create_all, get_session, unit_of_work
from storefront.models import Product, Role, User

DEMO_USERS = [
    {
        'email': 'admin@quality-platform.com', 'username': 'admin', 'password': 'admin123',
        'first_name': 'System', 'last_name': 'Administrator', 'role': Role.ADMIN,
    },
    {
        'email': 'user@quality-platform.com', 'username': 'testuser', 'password': 'user123',
        'first_name': 'Test', 'last_name': 'User', 'role': Role.USER,
    },
]

DEMO_PRODUCTS = [
    ('Wireless Bluetooth Headphones',
     'High-quality wireless headphones with active noise cancellation and 30-hour battery life.',
     '199.99', 50, 'Electronics'),
    ('Gaming Mechanical Keyboard',
     'RGB backlit mechanical keyboard with Cherry MX switches, perfect for gaming and productivity.',
     '149.99', 30, 'Electronics'),
    ('Smart Fitness Watch',
     'Advanced fitness tracking watch with heart rate monitor, GPS, and 7-day battery life.',
     '299.99', 25, 'Wearables'),
    ('Professional Coffee Maker',
     'Programmable drip coffee maker with thermal carafe and built-in grinder.',
     '249.99', 15, 'Appliances'),
    ('Ergonomic Office Chair',
     'Adjustable office chair with lumbar support and breathable mesh back for all-day comfort.',
     '399.99', 20, 'Furniture'),
    ('Portable External SSD',
     '1TB portable SSD with USB-C connectivity and ultra-fast transfer speeds.',
     '129.99', 40, 'Electronics'),
    ('Wireless Phone Charger',
     'Fast wireless charging pad compatible with all Qi-enabled devices.',
     '39.99', 60, 'Electronics'),
    ('Yoga Mat Premium',
     'Extra thick yoga mat with superior grip and eco-friendly materials.',
     '79.99', 35, 'Fitness'),
    ('Smart Home Speaker',
     'Voice-controlled smart speaker with premium sound quality and home automation.',
     '179.99', 22, 'Electronics'),
    ('Stainless Steel Water Bottle',
     'Insulated water bottle that keeps drinks cold for 24 hours or hot for 12 hours.',
     '34.99', 80, 'Lifestyle'),
]

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def seed_demo_data(session):
    """
    Insert the demo users and products.

    Users are matched by email and left alone if present. Products are only
    inserted into an empty catalog.

    Returns:
        (users_created, products_created)
    """
    users_created = 0
    products_created = 0

    with unit_of_work(session):
        for data in DEMO_USERS:
            if session.query(User).filter_by(email=data['email']).first():
                continue
            user = User(
                email=data['email'],
                username=data['username'],
                first_name=data['first_name'],
                last_name=data['last_name'],
                role=data['role'],
                active=True,
            )
            user.set_password(data['password'])
            session.add(user)
            users_created += 1

        if session.query(Product).count() == 0:
            for name, description, price, stock, category in DEMO_PRODUCTS:
                session.add(Product(
                    name=name,
                    description=description,
                    price=Decimal(price),
                    stock=stock,
                    category=category,
                    active=True,
                ))
                products_created += 1

    return users_created, products_created


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        create_all()
        click.echo(click.style('✅ Database tables created', fg='green'))

    @app.cli.command('seed-db')
    def seed_db_command():
        """Load demo users and products."""
        users, products = seed_demo_data(get_session())
        click.echo(click.style(f'🌱 Seeded {users} users and {products} products', fg='green'))

    @app.cli.command('create-admin')
    @click.option('--email', prompt=True, help='Admin email address')
    @click.option('--username', prompt=True, help='Admin username (3-30 characters)')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Admin password')
    def create_admin(email, username, password):
        """Create a new ADMIN user."""

        # Validate email format
        if not re.match(EMAIL_PATTERN, email):
            click.echo(click.style('❌ Invalid email. Use the format user@example.com', fg='red'))
            return

        if not 3 <= len(username) <= 30:
            click.echo(click.style('❌ Username must be between 3 and 30 characters.', fg='red'))
            return

        # Validate password length
        if len(password) < 6:
            click.echo(click.style('❌ Password must be at least 6 characters.', fg='red'))
            return

        session = get_session()

        # Check if user already exists
        existing = session.query(User).filter(
            (User.email == email.lower()) | (User.username == username)
        ).first()
        if existing:
            click.echo(click.style(f'❌ A user with that email or username already exists: {email}', fg='red'))
            return

        with unit_of_work(session):
            admin = User(email=email.lower(), username=username, role=Role.ADMIN, active=True)
            admin.set_password(password)
            session.add(admin)

        click.echo(click.style('\n✅ Administrator created', fg='green', bold=True))
        click.echo(f'   Email: {admin.email}')
        click.echo(f'   ID: {admin.id}')
