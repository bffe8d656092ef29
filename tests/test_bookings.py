from datetime import date

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import booking_service
from booking_service import cancel_booking, create_booking, occupancy_rate
from conftest import add_payment, assert_availability_consistent, book, room_availability
from errors import ConflictError, NotFoundError
from models import db, Booking, Payment, Room, ROOM_AVAILABLE, ROOM_BOOKED


def test_create_booking_marks_room_booked(app, client):
    response = book(client, room_id=1)

    assert response.status_code == 201
    body = response.get_json()
    assert body['booking_id'] > 0
    assert body['user_id'] == 1
    assert body['room_id'] == 1
    assert body['check_in_date'] == '2026-11-01'
    assert body['check_out_date'] == '2026-11-03'
    assert body['payment_status'] == 'unpaid'
    assert room_availability(app, 1) == ROOM_BOOKED
    assert_availability_consistent(app)


def test_second_booking_on_same_room_conflicts(app, client):
    assert book(client, room_id=2, user_id=1).status_code == 201

    response = book(client, room_id=2, user_id=2)

    assert response.status_code == 409
    assert response.get_json() == {'error': 'Room is already booked'}
    with app.app_context():
        assert db.session.query(Booking).filter_by(room_id=2).count() == 1
    assert_availability_consistent(app)


def test_booking_unknown_room_is_not_found(app, client):
    response = book(client, room_id=999)

    assert response.status_code == 404
    assert response.get_json()['error'] == 'Room not found'
    with app.app_context():
        assert db.session.query(Booking).count() == 0


def test_booking_unknown_user_leaves_room_available(app, client):
    response = book(client, room_id=1, user_id=999)

    assert response.status_code == 404
    assert room_availability(app, 1) == ROOM_AVAILABLE


@pytest.mark.parametrize('missing', ['user_id', 'room_id', 'check_in_date', 'check_out_date'])
def test_booking_requires_all_fields(client, missing):
    payload = {
        'user_id': 1,
        'room_id': 1,
        'check_in_date': '2026-11-01',
        'check_out_date': '2026-11-03'
    }
    del payload[missing]

    response = client.post('/api/bookings', json=payload)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Missing required fields'


def test_booking_rejects_bad_dates(app, client):
    assert book(client, check_in='01/11/2026').status_code == 400
    assert book(client, check_in='2026-11-05', check_out='2026-11-05').status_code == 400
    assert book(client, check_in='2026-11-05', check_out='2026-11-01').status_code == 400
    assert room_availability(app, 1) == ROOM_AVAILABLE


def test_cancel_booking_frees_room_and_removes_payments(app, client):
    booking_id = book(client, room_id=3).get_json()['booking_id']
    add_payment(app, booking_id, '100.00')

    response = client.delete(f'/api/bookings/{booking_id}')

    assert response.status_code == 200
    assert response.get_json()['message'] == 'Booking cancelled successfully'
    assert room_availability(app, 3) == ROOM_AVAILABLE
    listed = [b['booking_id'] for b in client.get('/api/bookings').get_json()]
    assert booking_id not in listed
    with app.app_context():
        assert db.session.query(Payment).filter_by(booking_id=booking_id).count() == 0
    assert_availability_consistent(app)


def test_cancelled_room_can_be_booked_again(app, client):
    booking_id = book(client, room_id=1).get_json()['booking_id']
    client.delete(f'/api/bookings/{booking_id}')

    assert book(client, room_id=1, user_id=2).status_code == 201
    assert_availability_consistent(app)


def test_cancel_unknown_booking_changes_nothing(app, client):
    booking_id = book(client, room_id=1).get_json()['booking_id']
    add_payment(app, booking_id, '50.00')

    response = client.delete('/api/bookings/999')

    assert response.status_code == 404
    assert response.get_json() == {'error': 'Booking not found'}
    assert room_availability(app, 1) == ROOM_BOOKED
    with app.app_context():
        assert db.session.query(Booking).count() == 1
        assert db.session.query(Payment).count() == 1


def test_cancel_booking_service_raises_not_found(app):
    with app.app_context():
        with pytest.raises(NotFoundError):
            cancel_booking(db.session, 12345)


def test_list_bookings_includes_room_hotel_and_user(client):
    book(client, room_id=1)

    rows = client.get('/api/bookings').get_json()

    assert len(rows) == 1
    assert rows[0]['room_number'] == 101
    assert rows[0]['hotel_name'] == 'Grand Plaza'
    assert rows[0]['user_name'] == 'Guest'


def test_list_bookings_by_user(client):
    book(client, room_id=1, user_id=1)
    book(client, room_id=3, user_id=2)

    rows = client.get('/api/bookings/user/1').get_json()

    assert [r['room_number'] for r in rows] == [101]
    assert rows[0]['room_type'] == 'Standard'
    assert rows[0]['hotel_name'] == 'Grand Plaza'
    assert client.get('/api/users/2/bookings').get_json()[0]['room_number'] == 201


def test_admin_bookings_require_admin(client, guest_client):
    assert client.get('/api/bookings/admin').status_code == 401
    assert guest_client.get('/api/bookings/admin').status_code == 403


def test_admin_bookings_detailed(app, admin_client):
    booking_id = book(admin_client, room_id=3, check_in='2026-12-01', check_out='2026-12-05') \
        .get_json()['booking_id']
    unpaid_id = book(admin_client, room_id=1).get_json()['booking_id']
    add_payment(app, booking_id, '300.00')
    add_payment(app, booking_id, '200.00')

    rows = {r['booking_id']: r for r in admin_client.get('/api/bookings/admin').get_json()}

    assert len(rows) == 2
    assert rows[booking_id]['duration_days'] == 4
    assert rows[booking_id]['amount_paid'] == 500.0
    assert rows[booking_id]['user_email'] == 'guest@example.com'
    assert rows[booking_id]['room_type'] == 'Deluxe'
    assert rows[booking_id]['price'] == 250.0
    assert rows[unpaid_id]['amount_paid'] == 0


def test_dashboard_stats(app, admin_client):
    booking_id = book(admin_client, room_id=1).get_json()['booking_id']
    add_payment(app, booking_id, '120.50')

    stats = admin_client.get('/api/bookings/stats').get_json()

    assert stats == {
        'total_bookings': 1,
        'total_revenue': 120.5,
        'total_users': 1,
        'total_rooms': 3,
        'booked_rooms': 1,
        'occupancy_rate': 33
    }


def test_dashboard_stats_without_rooms(app, admin_client):
    with app.app_context():
        db.session.query(Room).delete()
        db.session.commit()

    stats = admin_client.get('/api/bookings/stats').get_json()

    assert stats['occupancy_rate'] == 0
    assert stats['total_revenue'] == 0
    assert stats['total_rooms'] == 0


def test_dashboard_stats_requires_admin(guest_client):
    assert guest_client.get('/api/bookings/stats').status_code == 403


@pytest.mark.parametrize('booked, total, expected', [
    (0, 0, 0),
    (0, 5, 0),
    (1, 3, 33),
    (1, 8, 13),
    (2, 3, 67),
    (4, 4, 100),
])
def test_occupancy_rate(booked, total, expected):
    assert occupancy_rate(booked, total) == expected


def test_booking_nights_never_below_one(app):
    booking = Booking(check_in_date=date(2026, 1, 1), check_out_date=date(2026, 1, 1))
    assert booking.nights == 1
    booking.check_out_date = date(2026, 1, 4)
    assert booking.nights == 3


def test_booking_body_must_be_an_object(app, client):
    response = client.post('/api/bookings', json=[1, 2])

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Request body must be a JSON object'
    assert room_availability(app, 1) == ROOM_AVAILABLE


@pytest.mark.parametrize('room_id', [1.9, True, '1a'])
def test_booking_rejects_non_integer_room_id(app, client, room_id):
    response = book(client, room_id=room_id)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid room_id'
    assert room_availability(app, 1) == ROOM_AVAILABLE


def test_booking_accepts_numeric_string_ids(app, client):
    response = book(client, room_id='2', user_id=' 1 ')

    assert response.status_code == 201
    assert response.get_json()['room_id'] == 2
    assert room_availability(app, 2) == ROOM_BOOKED


def test_room_claimed_by_another_session_conflicts(app):
    with app.app_context():
        # this session still holds the room as available
        assert db.session.get(Room, 1).availability == ROOM_AVAILABLE

        other = Session(db.engine)
        other.query(Room).filter_by(room_id=1).update({'availability': ROOM_BOOKED})
        other.add(Booking(user_id=2, room_id=1, check_in_date=date(2026, 11, 5),
                          check_out_date=date(2026, 11, 6)))
        other.commit()
        other.close()

        with pytest.raises(ConflictError):
            create_booking(db.session, 1, 1, '2026-11-01', '2026-11-03')

        bookings = db.session.query(Booking).filter_by(room_id=1).all()
        assert [b.user_id for b in bookings] == [2]
    assert_availability_consistent(app)


def test_failed_cancel_keeps_booking_payments_and_room(app, client, monkeypatch):
    booking_id = book(client, room_id=1).get_json()['booking_id']
    add_payment(app, booking_id, '50.00')
    delete_rows = booking_service.delete_booking_rows

    def failing_delete(session, booking_id):
        delete_rows(session, booking_id)
        raise SQLAlchemyError('room update failed')

    monkeypatch.setattr(booking_service, 'delete_booking_rows', failing_delete)

    response = client.delete(f'/api/bookings/{booking_id}')

    assert response.status_code == 500
    assert response.get_json()['error'] == 'Failed to cancel booking'
    assert room_availability(app, 1) == ROOM_BOOKED
    with app.app_context():
        assert db.session.get(Booking, booking_id) is not None
        assert db.session.query(Payment).filter_by(booking_id=booking_id).count() == 1
    assert_availability_consistent(app)
