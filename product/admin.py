# product/admin.py
from django.contrib import admin
from .models import Product, Category


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "category", "price", "sale_price", "stock", "active", "featured", "created_at")
    list_filter = ("category", "active", "featured")
    search_fields = ("name", "category__name")
    prepopulated_fields = {"slug": ("name",)}
