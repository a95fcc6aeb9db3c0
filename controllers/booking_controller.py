from flask import Blueprint, request, jsonify
from services.instance_status_service import InstanceStatusService

booking_bp = Blueprint('bookings', __name__)


@booking_bp.route('/bookings/<int:booking_id>', methods=['GET'])
def get_booking(booking_id):
    booking = InstanceStatusService.get_booking(booking_id)
    return jsonify({'success': True, 'data': booking.to_dict()}), 200


@booking_bp.route('/bookings/<int:booking_id>/checkin', methods=['PATCH'])
def check_in_booking(booking_id):
    booking = InstanceStatusService.check_in(booking_id)
    return jsonify({'success': True, 'message': 'Checked in', 'data': booking.to_dict()}), 200


@booking_bp.route('/bookings/<int:booking_id>/checkout', methods=['PATCH'])
def check_out_booking(booking_id):
    booking = InstanceStatusService.check_out(booking_id)
    return jsonify({'success': True, 'message': 'Checked out', 'data': booking.to_dict()}), 200


@booking_bp.route('/bookings/<int:booking_id>/cancel', methods=['PATCH'])
def cancel_booking(booking_id):
    booking = InstanceStatusService.change_status(booking_id, 'cancelled')
    return jsonify({'success': True, 'message': 'Booking cancelled', 'data': booking.to_dict()}), 200


@booking_bp.route('/bookings/<int:booking_id>/payment-status', methods=['PATCH'])
def update_booking_payment_status(booking_id):
    data = request.get_json(silent=True) or {}
    booking = InstanceStatusService.set_payment_status(
        booking_id,
        data.get('payment_status'),
        method=data.get('payment_method')
    )
    return jsonify({'success': True, 'message': 'Payment status updated', 'data': booking.to_dict()}), 200
