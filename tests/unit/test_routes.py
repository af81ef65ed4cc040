"""
API route tests against the in-memory database.

Run: pytest tests/unit/test_routes.py -v
"""

from tests.factories import MarketFactory, ProductFactory, WaveFactory


class TestMarketRoutes:

    def test_list_sorted_by_name_camel_case(self, test_client_with_mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("markets", [
            MarketFactory.create(id="M2", name="Spar Baden", latitude=48.0, longitude=16.2),
            MarketFactory.create(id="M1", name="Billa Mödling"),
        ])

        # Act
        response = test_client_with_mock_db.get("/api/markets")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert [m["name"] for m in data] == ["Billa Mödling", "Spar Baden"]
        assert "postalCode" in data[0]
        assert "lastVisitDate" in data[0]
        assert data[1]["coordinates"] == {"lat": 48.0, "lng": 16.2}

    def test_filter_by_gl(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.set_table_data("markets", [
            MarketFactory.create(id="M1", gebietsleiter_id="gl-1"),
            MarketFactory.create(id="M2", gebietsleiter_id="gl-2"),
        ])

        response = test_client_with_mock_db.get("/api/markets", params={"glId": "gl-2"})

        assert [m["id"] for m in response.json()] == ["M2"]

    def test_create_returns_201(self, test_client_with_mock_db, mock_supabase):
        response = test_client_with_mock_db.post("/api/markets", json={
            "id": "M9",
            "name": "Hofer Graz",
            "postalCode": "8010",
            "gebietsleiterId": "gl-1",
        })

        assert response.status_code == 201
        assert response.json()["postalCode"] == "8010"
        assert mock_supabase.rows("markets")[0]["postal_code"] == "8010"

    def test_options_preflight(self, test_client_with_mock_db):
        response = test_client_with_mock_db.options("/api/markets")

        assert response.status_code == 200

    def test_unsupported_method(self, test_client_with_mock_db):
        response = test_client_with_mock_db.patch("/api/markets", json={})

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}

    def test_not_found_shape(self, test_client_with_mock_db, mock_supabase):
        response = test_client_with_mock_db.get("/api/markets/missing")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "MARKET_NOT_FOUND"
        assert error["details"] == {"id": "missing"}

    def test_record_visit(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.set_table_data("markets", [MarketFactory.create(id="M1", current_visits=3)])

        response = test_client_with_mock_db.post("/api/markets/M1/visit", params={"glId": "gl-1"})

        assert response.status_code == 200
        assert response.json()["currentVisits"] == 4
        assert response.json()["incremented"] is True

    def test_import_file(self, test_client_with_mock_db, mock_supabase):
        header = ";".join(f"Spalte{i}" for i in range(22))
        row = [""] * 22
        row[0], row[5], row[7] = "1001", "billa plus", "Billa Mödling"
        content = f"{header}\n{';'.join(row)}\n".encode("utf-8")

        response = test_client_with_mock_db.post(
            "/api/markets/import/file",
            files={"file": ("maerkte.csv", content, "text/csv")},
        )

        assert response.status_code == 200
        assert response.json()["success"] == 1
        assert mock_supabase.rows("markets")[0]["chain"] == "Billa+"

    def test_import_file_wrong_type(self, test_client_with_mock_db):
        response = test_client_with_mock_db.post(
            "/api/markets/import/file",
            files={"file": ("maerkte.pdf", b"%PDF", "application/pdf")},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "IMPORT_FILE_INVALID"


class TestProductRoutes:

    def test_list_excludes_inactive(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.set_table_data("products", [
            ProductFactory.create(name="Aktiv"),
            ProductFactory.create(name="Alt", is_active=False),
        ])

        response = test_client_with_mock_db.get("/api/products")

        assert [p["name"] for p in response.json()] == ["Aktiv"]

    def test_create_list(self, test_client_with_mock_db, mock_supabase):
        response = test_client_with_mock_db.post("/api/products", json=[
            {"name": "Whiskas Huhn", "department": "pets", "price": 0.89},
            {"name": "Pedigree Rind", "department": "pets", "price": 1.29},
        ])

        assert response.status_code == 201
        assert len(mock_supabase.rows("products")) == 2


class TestWaveRoutes:

    def test_create_wave(self, test_client_with_mock_db, mock_supabase):
        response = test_client_with_mock_db.post("/api/waves", json={
            "name": "Herbstwelle",
            "startDate": "2026-10-01",
            "endDate": "2026-11-30",
            "goalType": "percentage",
            "goalPercentage": 80,
            "displays": [{"name": "Display Sheba", "targetNumber": 10}],
        })

        assert response.status_code == 201
        assert response.json()["message"] == "Welle erfolgreich erstellt"
        assert len(mock_supabase.rows("wellen_displays")) == 1

    def test_batch_progress(self, test_client_with_mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("wellen", [WaveFactory.create(id="w1")])
        mock_supabase.set_table_data("wellen_displays", [WaveFactory.display("w1", id="d1")])

        # Act
        response = test_client_with_mock_db.post("/api/waves/w1/progress/batch", json={
            "gebietsleiterId": "gl-1",
            "marketId": "M1",
            "items": [
                {"itemType": "display", "itemId": "d1", "quantity": 3},
                {"itemType": "display", "itemId": "d1", "quantity": 0},
            ],
        })

        # Assert
        assert response.status_code == 201
        wave = test_client_with_mock_db.get("/api/waves/w1").json()
        assert wave["displays"][0]["currentNumber"] == 3
        assert wave["goalProgress"] == 30.0

    def test_all_progress(self, test_client_with_mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("wellen", [WaveFactory.create(id="w1")])
        mock_supabase.set_table_data("wellen_displays", [
            WaveFactory.display("w1", id="d1", name="Display Sheba", item_value=120.0)
        ])
        mock_supabase.set_table_data("gebietsleiter", [{"id": "gl-1", "name": "Anna Huber"}])
        mock_supabase.set_table_data("markets", [MarketFactory.create(id="M1", name="Billa Baden")])
        test_client_with_mock_db.post("/api/waves/w1/progress/batch", json={
            "gebietsleiterId": "gl-1",
            "marketId": "M1",
            "items": [{"itemType": "display", "itemId": "d1", "quantity": 2}],
        })

        # Act
        response = test_client_with_mock_db.get("/api/waves/w1/all-progress")

        # Assert
        assert response.status_code == 200
        [entry] = response.json()
        assert entry["glName"] == "Anna Huber"
        assert entry["marketName"] == "Billa Baden"
        assert entry["itemName"] == "Display Sheba"
        assert entry["quantity"] == 2
        assert entry["value"] == 240.0

    def test_all_progress_unknown_wave(self, test_client_with_mock_db):
        response = test_client_with_mock_db.get("/api/waves/missing/all-progress")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "WAVE_NOT_FOUND"

    def test_empty_batch_rejected(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.set_table_data("wellen", [WaveFactory.create(id="w1")])

        response = test_client_with_mock_db.post("/api/waves/w1/progress/batch", json={
            "gebietsleiterId": "gl-1",
            "marketId": "M1",
            "items": [{"itemType": "display", "itemId": "d1", "quantity": 0}],
        })

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "EMPTY_SUBMISSION"

    def test_wave_not_found(self, test_client_with_mock_db):
        response = test_client_with_mock_db.get("/api/waves/nope")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "WAVE_NOT_FOUND"


class TestTourRoutes:

    def test_estimate(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.set_table_data("markets", [
            MarketFactory.create(id="M1", name="Billa Mödling"),
            MarketFactory.create(id="M2", name="Spar Baden"),
        ])

        response = test_client_with_mock_db.post("/api/tours/estimate", json={
            "marketIds": ["M2", "M1"],
            "transportMode": "car",
        })

        assert response.status_code == 200
        data = response.json()
        assert [s["marketName"] for s in data["stops"]] == ["Spar Baden", "Billa Mödling"]
        assert data["totalMinutes"] == 105
        assert data["totalFormatted"] == "1h 45min"

    def test_estimate_requires_markets(self, test_client_with_mock_db):
        response = test_client_with_mock_db.post("/api/tours/estimate", json={"marketIds": []})

        assert response.status_code == 422
