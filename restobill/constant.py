"""Editable seed data for a fresh install."""

from __future__ import annotations

INITIAL_SETTINGS: dict[str, str] = {
    "name": "Spice Garden",
    "address": "42 Masala Street, New Delhi, 110001",
    "phone": "+91 98765 43210",
    "tax_rate": "5",
    "service_charge_rate": "5",
    "currency": "₹",
}

# Canonical menu rows consumed by restobill.data (which wraps these into MenuItem instances).
MENU_ITEMS: list[dict[str, str]] = [
    {"id": "1", "name": "Paneer Tikka", "price": "240", "category": "Starters", "description": "Marinated cottage cheese grilled in tandoor"},
    {"id": "2", "name": "Chicken Tikka", "price": "280", "category": "Starters", "description": "Spicy marinated chicken chunks"},
    {"id": "3", "name": "Veg Manchurian", "price": "180", "category": "Starters", "description": "Vegetable balls in spicy chinese sauce"},
    {"id": "4", "name": "Samosa (2pcs)", "price": "40", "category": "Starters", "description": "Crispy pastry filled with spiced potatoes"},
    {"id": "5", "name": "Butter Chicken", "price": "350", "category": "Main Course", "description": "Classic chicken in rich tomato butter gravy"},
    {"id": "6", "name": "Dal Makhani", "price": "220", "category": "Main Course", "description": "Creamy black lentils slow cooked overnight"},
    {"id": "7", "name": "Paneer Butter Masala", "price": "260", "category": "Main Course", "description": "Cottage cheese in rich tomato gravy"},
    {"id": "8", "name": "Kadai Chicken", "price": "320", "category": "Main Course", "description": "Chicken cooked with bell peppers and spices"},
    {"id": "9", "name": "Garlic Naan", "price": "55", "category": "Breads", "description": "Leavened bread topped with garlic"},
    {"id": "10", "name": "Butter Roti", "price": "35", "category": "Breads", "description": "Whole wheat bread with butter"},
    {"id": "11", "name": "Chicken Biryani", "price": "280", "category": "Rice", "description": "Aromatic basmati rice cooked with spiced chicken"},
    {"id": "12", "name": "Jeera Rice", "price": "140", "category": "Rice", "description": "Basmati rice tempered with cumin seeds"},
    {"id": "13", "name": "Masala Dosa", "price": "120", "category": "South Indian", "description": "Crispy rice crepe filled with potato masala"},
    {"id": "14", "name": "Idli Sambar", "price": "80", "category": "South Indian", "description": "Steamed rice cakes with lentil soup"},
    {"id": "15", "name": "Masala Chai", "price": "30", "category": "Beverages", "description": "Spiced indian tea"},
    {"id": "16", "name": "Sweet Lassi", "price": "80", "category": "Beverages", "description": "Chilled yogurt drink"},
    {"id": "17", "name": "Gulab Jamun", "price": "60", "category": "Dessert", "description": "Deep fried milk dumplings in sugar syrup"},
]

TABLE_COUNT = 12
TABLE_CAPACITY = 4

INITIAL_STAFF: list[dict[str, str]] = [
    {"id": "s1", "name": "Rahul Sharma", "role": "Manager", "phone": "98765-00001"},
    {"id": "s2", "name": "Priya Singh", "role": "Waiter", "phone": "98765-00002"},
    {"id": "s3", "name": "Amit Kumar", "role": "Chef", "phone": "98765-00003"},
]
