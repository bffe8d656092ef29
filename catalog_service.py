"""Read-only queries over hotels, rooms, room types and amenities"""

from errors import NotFoundError, ValidationError, parse_id
from models import Amenity, Hotel, Room, RoomType, ROOM_AVAILABLE, ROOM_BOOKED


def list_hotels(session):
    return [h.to_dict() for h in session.query(Hotel).order_by(Hotel.hotel_id).all()]


def get_hotel(session, hotel_id):
    hotel = session.get(Hotel, parse_id(hotel_id, 'hotel_id'))
    if hotel is None:
        raise NotFoundError('Hotel not found')
    return hotel.to_dict()


def _rooms_query(session):
    return session.query(Room, Hotel.hotel_name, RoomType.room_type) \
        .join(Hotel, Room.hotel_id == Hotel.hotel_id) \
        .join(RoomType, Room.room_type_id == RoomType.room_type_id)


def _room_rows(rows):
    return [
        dict(room.to_dict(), hotel_name=hotel_name, room_type=room_type)
        for room, hotel_name, room_type in rows
    ]


def list_rooms(session, availability=None):
    query = _rooms_query(session)
    if availability:
        if availability not in (ROOM_AVAILABLE, ROOM_BOOKED):
            raise ValidationError('availability must be available or booked')
        query = query.filter(Room.availability == availability)
    return _room_rows(query.order_by(Room.room_id).all())


def list_rooms_by_hotel(session, hotel_id):
    hotel_id = parse_id(hotel_id, 'hotel_id')
    rows = _rooms_query(session).filter(Room.hotel_id == hotel_id) \
        .order_by(Room.room_number).all()
    return _room_rows(rows)


def get_room(session, room_id):
    row = _rooms_query(session).filter(Room.room_id == parse_id(room_id, 'room_id')).first()
    if row is None:
        raise NotFoundError('Room not found')
    return _room_rows([row])[0]


def list_room_types(session):
    return [rt.to_dict() for rt in session.query(RoomType).order_by(RoomType.room_type_id).all()]


def get_room_type(session, room_type_id):
    room_type = session.get(RoomType, parse_id(room_type_id, 'room_type_id'))
    if room_type is None:
        raise NotFoundError('Room type not found')
    return room_type.to_dict(with_amenities=True)


def list_amenities(session):
    return [a.to_dict() for a in session.query(Amenity).order_by(Amenity.amenity_id).all()]
