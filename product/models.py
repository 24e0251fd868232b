from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils.text import slugify


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=120, unique=True, blank=True)
    description = models.TextField(blank=True, default="")
    image = models.URLField(max_length=500, blank=True, default="")

    class Meta:
        verbose_name_plural = "categories"
        ordering = ["name"]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)


class ProductQuerySet(models.QuerySet):
    def active(self):
        return self.filter(active=True)

    def decrement_stock(self, product_id, quantity):
        """
        Conditional decrement: only succeeds while stock >= quantity.
        Returns the number of rows updated (0 or 1).
        """
        return self.filter(pk=product_id, stock__gte=quantity).update(stock=F("stock") - quantity)


class Product(models.Model):
    category = models.ForeignKey(
        Category, on_delete=models.PROTECT, related_name="products"
    )
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=14, decimal_places=2)
    sale_price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    stock = models.PositiveIntegerField(default=0)
    images = models.JSONField(default=list, blank=True)
    featured = models.BooleanField(default=False)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(stock__gte=0), name="product_stock_non_negative"),
            models.CheckConstraint(condition=Q(price__gte=0), name="product_price_non_negative"),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        # auto-generate slug if not provided
        if not self.slug:
            base = slugify(self.name)[:200] or "product"
            slug = base
            i = 1
            while Product.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                slug = f"{base}-{i}"
                i += 1
            self.slug = slug
        super().save(*args, **kwargs)

    @property
    def has_discount(self):
        return self.sale_price is not None and self.sale_price < self.price

    @property
    def effective_price(self):
        """Price charged at checkout: the sale price when set and lower, else the list price."""
        if self.has_discount:
            return Decimal(self.sale_price)
        return Decimal(self.price)

    @property
    def discount_percent(self):
        if not self.has_discount or not self.price:
            return Decimal("0.0")
        percent = (Decimal(self.price) - Decimal(self.sale_price)) / Decimal(self.price) * 100
        return percent.quantize(Decimal("0.1"))
