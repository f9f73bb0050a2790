"""
offers/urls.py
"""

from django.urls import path

from offers import views

app_name = "offers"

urlpatterns = [
    path("", views.OfferListView.as_view(), name="list"),
    path("new/<int:app_pk>/", views.CreateOfferView.as_view(), name="new"),
    path("respond/<uuid:token>/", views.OfferRespondView.as_view(), name="respond"),
    path("<int:pk>/", views.OfferDetailView.as_view(), name="detail"),
    path("<int:pk>/send/", views.SendOfferView.as_view(), name="send"),
    path("<int:pk>/withdraw/", views.WithdrawOfferView.as_view(), name="withdraw"),
]
