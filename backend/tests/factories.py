"""Payload and header builders shared by the API tests"""
from typing import Dict

from faker import Faker

from myteacher.core.security import create_access_token, token_payload_for

fake = Faker()


def auth_headers_for(user) -> Dict[str, str]:
    token = create_access_token(token_payload_for(user))
    return {'Authorization': f'Bearer {token}'}


def register_payload() -> dict:
    return {
        'username': fake.unique.user_name().replace('-', '_'),
        'email': fake.unique.email(),
        'password': 'Sup3rSecret!pass',
        'display_name': fake.name(),
    }


def student_payload(**overrides) -> dict:
    payload = {
        'first_name': fake.first_name(),
        'last_name': fake.last_name(),
        'grade': '3',
        'school_name': 'Clarksville Elementary',
    }
    payload.update(overrides)
    return payload


GOAL_EXEMPLAR = (
    b"Annual Goal: By June 2027, given a grade-level passage, the student will read "
    b"110 words correct per minute with 95% accuracy on 4 of 5 trials."
)


async def upload_exemplar(client, headers, content: bytes = GOAL_EXEMPLAR, filename: str = 'reading-goals.txt') -> dict:
    """Upload a best-practice document; ingestion runs before the response returns"""
    response = await client.post(
        '/api/v1/admin/best-practice-docs',
        headers=headers,
        files={'file': (filename, content, 'text/plain')},
        data={'title': 'Exemplary reading goals', 'plan_type': 'IEP'},
    )
    assert response.status_code == 201, response.text
    return response.json()
