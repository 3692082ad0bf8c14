# catalog/urls.py

from django.urls import path

from catalog.views import CategoryListView, ServiceListView

urlpatterns = [
    path("categories/", CategoryListView.as_view(), name="catalog-categories"),
    path("services/", ServiceListView.as_view(), name="catalog-services"),
]
