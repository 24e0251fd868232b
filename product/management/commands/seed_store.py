from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from cart.models import Cart
from product.models import Category, Product
from wallet.models import Wallet, Transaction

User = get_user_model()

USERS = [
    {
        "email": "admin@shopvn.com",
        "password": "admin123",
        "name": "Admin ShopVN",
        "phone_number": "0123456789",
        "address": "Ha Noi, Viet Nam",
        "is_staff": True,
        "is_superuser": True,
        "balance": Decimal("10000000"),
    },
    {
        "email": "user@shopvn.com",
        "password": "user123",
        "name": "Nguyen Van A",
        "phone_number": "0987654321",
        "address": "TP. Ho Chi Minh, Viet Nam",
        "balance": Decimal("1000000"),
    },
]

CATEGORIES = [
    ("Phones & Tablets", "dien-thoai-tablet", "Phones and tablets from every brand"),
    ("Laptops & Computers", "laptop-may-tinh", "Laptops, PCs and components"),
    ("Audio & Accessories", "am-thanh-phu-kien", "Headphones, speakers and accessories"),
    ("Smart Watches", "dong-ho-thong-minh", "Smartwatches and fitness bands"),
    ("Smart Home", "nha-thong-minh", "IoT and smart home devices"),
]

# (category slug, name, price, sale price, stock, featured)
PRODUCTS = [
    ("dien-thoai-tablet", "iPhone 15 Pro Max", "34990000", "32990000", 50, True),
    ("dien-thoai-tablet", "Samsung Galaxy S24 Ultra", "31990000", "29990000", 45, True),
    ("dien-thoai-tablet", "Google Pixel 8 Pro", "24990000", None, 35, False),
    ("laptop-may-tinh", "MacBook Pro 14 M3 Pro", "52990000", "49990000", 25, True),
    ("laptop-may-tinh", "Dell XPS 15", "45990000", "42990000", 20, False),
    ("am-thanh-phu-kien", "AirPods Pro 2", "6490000", "5990000", 100, True),
    ("am-thanh-phu-kien", "Sony WH-1000XM5", "8990000", "7990000", 60, False),
    ("dong-ho-thong-minh", "Apple Watch Series 9", "10990000", "9990000", 60, True),
    ("nha-thong-minh", "Google Nest Hub Max", "5990000", "4990000", 40, True),
    ("nha-thong-minh", "TP-Link Tapo Smart Plug", "299000", "249000", 200, False),
]


class Command(BaseCommand):
    help = "Create demo users, categories and products. Safe to run more than once."

    @transaction.atomic
    def handle(self, *args, **options):
        for entry in USERS:
            entry = dict(entry)
            balance = entry.pop("balance")
            password = entry.pop("password")
            if User.objects.filter(email=entry["email"]).exists():
                continue
            user = User.objects.create_user(password=password, **entry)
            Cart.objects.create(user=user)
            wallet = Wallet.objects.create(user=user, balance=balance)
            Transaction.objects.create(
                user=user,
                kind=Transaction.KIND_DEPOSIT,
                amount=balance,
                description="Opening balance",
            )
            self.stdout.write(f"Created user {user.email} (wallet {wallet.balance})")

        categories = {}
        for name, slug, description in CATEGORIES:
            categories[slug], _ = Category.objects.get_or_create(
                slug=slug, defaults={"name": name, "description": description}
            )

        created = 0
        for slug, name, price, sale_price, stock, featured in PRODUCTS:
            _, was_created = Product.objects.get_or_create(
                name=name,
                defaults={
                    "category": categories[slug],
                    "price": Decimal(price),
                    "sale_price": Decimal(sale_price) if sale_price else None,
                    "stock": stock,
                    "featured": featured,
                },
            )
            created += int(was_created)

        self.stdout.write(self.style.SUCCESS(
            f"Seed complete: {len(categories)} categories, {created} new products"
        ))
