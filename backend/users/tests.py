from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient


class AdminLoginTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user_model = get_user_model()
        self.admin = self.user_model.objects.create_user(
            username="owner",
            password="pass1234",
            is_staff=True,
        )

    def test_login_returns_token(self):
        response = self.client.post(
            reverse("admin-login"),
            data={"username": "owner", "password": "pass1234"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["username"], "owner")
        self.assertTrue(response.data["token"])

    def test_token_authenticates_admin_endpoints(self):
        response = self.client.post(
            reverse("admin-login"),
            data={"username": "owner", "password": "pass1234"},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {response.data['token']}")
        response = self.client.get(reverse("admin-me"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["id"], self.admin.id)

    def test_wrong_password(self):
        response = self.client.post(
            reverse("admin-login"),
            data={"username": "owner", "password": "nope"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data["message"], "Invalid credentials")

    def test_non_staff_user_cannot_log_in(self):
        self.user_model.objects.create_user(username="customer", password="pass1234")
        response = self.client.post(
            reverse("admin-login"),
            data={"username": "customer", "password": "pass1234"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_missing_credentials(self):
        response = self.client.post(reverse("admin-login"), data={"username": "owner"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "Please provide username and password")

    def test_me_requires_authentication(self):
        response = self.client.get(reverse("admin-me"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_rejects_non_admin(self):
        customer = self.user_model.objects.create_user(username="customer", password="pass1234")
        self.client.force_authenticate(customer)
        response = self.client.get(reverse("admin-me"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["message"], "Not authorized as an admin")
