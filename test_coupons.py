def test_create_percentage_coupon(client):
    """Test creating a percentage store coupon"""
    coupon_data = {
        "code": "sale10",
        "discount_type": "percentage",
        "discount_value": 10,
        "min_order_amount": 500,
    }

    response = client.post("/coupons", json=coupon_data)
    assert response.status_code == 201
    data = response.json()
    assert data["code"] == "SALE10"
    assert data["discount_type"] == "percentage"
    assert data["discount_value"] == 10
    assert data["min_order_amount"] == 500
    assert data["used_count"] == 0
    assert data["is_active"] is True


def test_create_fixed_coupon_with_limit(client):
    """Test creating a fixed store coupon with a redemption limit"""
    coupon_data = {
        "code": "MINUS300",
        "discount_type": "fixed",
        "discount_value": 300,
        "max_uses": 50,
    }

    response = client.post("/coupons", json=coupon_data)
    assert response.status_code == 201
    data = response.json()
    assert data["discount_type"] == "fixed"
    assert data["max_uses"] == 50


def test_duplicate_code_rejected(client):
    """Test codes are unique regardless of case"""
    client.post("/coupons", json={"code": "SALE10", "discount_value": 10})

    response = client.post("/coupons", json={"code": " sale10 ", "discount_value": 15})
    assert response.status_code == 400
    assert "already exists" in response.json()["error"]["detail"]


def test_invalid_percentage_rejected(client):
    """Test a percentage above 100 is rejected"""
    response = client.post("/coupons", json={"code": "TOOMUCH", "discount_value": 150})
    assert response.status_code == 400


def test_invalid_validity_window_rejected(client):
    """Test valid_from must come before valid_to"""
    response = client.post("/coupons", json={
        "code": "BACKWARDS",
        "discount_value": 10,
        "valid_from": "2026-05-01T00:00:00Z",
        "valid_to": "2026-04-01T00:00:00Z",
    })
    assert response.status_code == 400


def test_get_all_coupons(client):
    """Test retrieving all store coupons"""
    client.post("/coupons", json={"code": "ONE", "discount_value": 10})
    client.post("/coupons", json={"code": "TWO", "discount_type": "fixed", "discount_value": 100})

    response = client.get("/coupons")
    assert response.status_code == 200
    data = response.json()
    assert [c["code"] for c in data] == ["ONE", "TWO"]


def test_get_coupon_by_id(client):
    """Test retrieving a specific store coupon"""
    create_response = client.post("/coupons", json={"code": "ONE", "discount_value": 10})
    coupon_id = create_response.json()["id"]

    response = client.get(f"/coupons/{coupon_id}")
    assert response.status_code == 200
    assert response.json()["id"] == coupon_id

    response = client.get("/coupons/9999")
    assert response.status_code == 404


def test_update_coupon(client):
    """Test updating a store coupon"""
    create_response = client.post("/coupons", json={"code": "ONE", "discount_value": 10})
    coupon_id = create_response.json()["id"]

    response = client.put(f"/coupons/{coupon_id}", json={"discount_value": 25, "is_active": False})
    assert response.status_code == 200
    data = response.json()
    assert data["discount_value"] == 25
    assert data["is_active"] is False


def test_delete_coupon(client):
    """Test deleting an unused store coupon"""
    create_response = client.post("/coupons", json={"code": "ONE", "discount_value": 10})
    coupon_id = create_response.json()["id"]

    response = client.delete(f"/coupons/{coupon_id}")
    assert response.status_code == 204

    get_response = client.get(f"/coupons/{coupon_id}")
    assert get_response.status_code == 404


def test_delete_used_coupon_refused(client, make_store_coupon):
    """Test redeemed store coupons are kept"""
    coupon = make_store_coupon(code="USED", used_count=1)

    response = client.delete(f"/coupons/{coupon.id}")
    assert response.status_code == 400


def test_lookup_store_code(client):
    """Test typing a store code in the cart"""
    client.post("/coupons", json={"code": "SALE10", "discount_value": 10, "min_order_amount": 500})

    response = client.post("/coupons/lookup", json={"code": "sale10", "subtotal": 1000})
    assert response.status_code == 200
    data = response.json()
    assert data["kind"] == "store"
    assert data["store_coupon"]["code"] == "SALE10"

    response = client.post("/coupons/lookup", json={"code": "sale10", "subtotal": 100})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "coupon_not_applicable"


def test_lookup_unknown_code(client):
    """Test typing a code that does not exist"""
    response = client.post("/coupons/lookup", json={"code": "NOPE", "subtotal": 1000})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "coupon_not_found"


def test_health_check(client):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_update_coupon_with_nulls(client):
    """Test nulls clear optional limits but leave required fields alone"""
    create_response = client.post("/coupons", json={
        "code": "ONE",
        "discount_value": 10,
        "min_order_amount": 500,
        "max_uses": 3,
    })
    coupon_id = create_response.json()["id"]

    response = client.put(f"/coupons/{coupon_id}", json={
        "is_active": None,
        "discount_type": None,
        "min_order_amount": None,
        "max_uses": None,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["is_active"] is True
    assert data["discount_type"] == "percentage"
    assert data["min_order_amount"] is None
    assert data["max_uses"] is None
