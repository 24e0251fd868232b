from rest_framework import serializers
from .models import Product, Category


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ("id", "name", "slug", "description", "image")
        read_only_fields = ("slug",)


class ProductMiniSerializer(serializers.ModelSerializer):
    # minimal product shape for cart and order lines
    effective_price = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = ("id", "name", "slug", "images", "price", "sale_price", "effective_price", "stock", "active")


class ProductSerializer(serializers.ModelSerializer):
    category = CategorySerializer(read_only=True)
    category_id = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(), source="category", write_only=True
    )
    effective_price = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    discount_percent = serializers.DecimalField(max_digits=4, decimal_places=1, read_only=True)

    class Meta:
        model = Product
        fields = (
            "id", "name", "slug", "description", "price", "sale_price", "effective_price",
            "has_discount", "discount_percent", "stock", "images", "featured", "active",
            "category", "category_id", "created_at", "updated_at",
        )
        read_only_fields = ("slug", "created_at", "updated_at")
        extra_kwargs = {
            "price": {"min_value": 0},
            "sale_price": {"min_value": 0},
        }

    def validate_images(self, value):
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise serializers.ValidationError("images must be a list of URLs")
        return value
