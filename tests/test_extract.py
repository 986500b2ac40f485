"""Tests for title parsing: category, brand, model and spec extraction."""

import pytest

from pcbuilder_mcp.extract import (
    cpu_vendor,
    extract_category,
    extract_chipset,
    extract_clock_speed,
    extract_cores,
    extract_form_factor,
    extract_gpu_clearance,
    extract_max_memory,
    extract_memory,
    extract_memory_type,
    extract_model,
    extract_socket,
    extract_sockets,
    extract_supported_form_factors,
    extract_tdp,
    extract_wattage,
    is_excluded,
    is_relevant,
    parse_title,
)


class TestExtractCategory:
    @pytest.mark.parametrize("title,expected", [
        ("Intel Core i7-13700K Desktop Processor", "CPU"),
        ("AMD Ryzen 5 5600G Desktop Processor with Radeon Graphics", "CPU"),
        ("ZOTAC Gaming GeForce RTX 4070 Twin Edge 12GB GDDR6X Graphics Card", "GPU"),
        ("Corsair Vengeance 32GB (2x16GB) DDR5 6000MHz Desktop Memory", "RAM"),
        ("MSI B650 Gaming Plus WiFi AM5 DDR5 ATX Motherboard", "Motherboard"),
        ("Samsung 990 PRO 2TB PCIe 4.0 NVMe M.2 SSD", "Storage"),
        ("Corsair RM850x 850 Watt 80+ Gold Fully Modular Power Supply", "PSU"),
        ("Lian Li Lancool 216 Mid Tower Case", "Case"),
        ("DeepCool AK620 CPU Air Cooler", "Cooling"),
    ])
    def test_detects(self, title, expected):
        assert extract_category(title) == expected

    def test_cooler_for_socket_is_cooling(self):
        assert extract_category("Noctua NH-D15 CPU Cooler for Intel LGA1700 and AMD AM5") == "Cooling"

    def test_undetectable(self):
        assert extract_category("Random widget") is None
        assert extract_category("") is None


class TestRelevancy:
    def test_laptop_excluded(self):
        assert is_excluded("ASUS Vivobook 15 Laptop Intel Core i5")
        assert not is_relevant("ASUS Vivobook 15 Laptop Intel Core i5")

    def test_peripheral_excluded(self):
        assert not is_relevant("HyperX Cloud II Gaming Headset")

    def test_prebuilt_excluded(self):
        assert not is_relevant("Intel Core i5 Gaming PC with RTX 3060")

    def test_general_keyword(self):
        assert is_relevant("Samsung 990 PRO 2TB NVMe SSD")

    def test_category_hint_narrows(self):
        title = "Samsung 990 PRO 2TB NVMe SSD"
        assert is_relevant(title, "Storage")
        assert not is_relevant(title, "GPU")

    def test_empty(self):
        assert not is_relevant("")


class TestValueExtractors:
    def test_clock_speed(self):
        assert extract_clock_speed("up to 5.4 GHz") == "5.4 GHz"
        assert extract_clock_speed("4.7GHz boost") == "4.7 GHz"
        assert extract_clock_speed("no clock") is None

    def test_memory(self):
        assert extract_memory("32GB (2x16GB) DDR5 6000MHz") == ("32GB", "DDR5")
        assert extract_memory("16 GB kit") == ("16GB", None)
        assert extract_memory("nothing here") is None

    def test_memory_type_ignores_gddr(self):
        assert extract_memory_type("12GB GDDR6X") is None
        assert extract_memory_type("ddr4 3200") == "DDR4"

    def test_cores(self):
        assert extract_cores("8-Core 16-Thread") == 8
        assert extract_cores("16 cores") == 16
        assert extract_cores("quad") is None

    def test_socket(self):
        assert extract_socket("LGA1700 socket") == "LGA1700"
        assert extract_socket("LGA 1851") == "LGA1851"
        assert extract_socket("AM5 DDR5") == "AM5"
        assert extract_socket("am4 board") == "AM4"
        assert extract_socket("no socket") is None

    def test_chipset(self):
        assert extract_chipset("MSI B650 Gaming Plus") == "B650"
        assert extract_chipset("ASUS ROG Strix X670E-E") == "X670E"
        assert extract_chipset("Gigabyte B760M DS3H") == "B760"

    def test_wattage(self):
        assert extract_wattage("850 Watt 80+ Gold") == 850
        assert extract_wattage("1000W Platinum") == 1000
        assert extract_wattage("no power") is None

    def test_tdp(self):
        assert extract_tdp("125W TDP") == 125
        assert extract_tdp("TDP: 65 W") == 65
        assert extract_tdp("65 watts") is None

    def test_gpu_clearance(self):
        assert extract_gpu_clearance("Mid Tower, GPU up to 392mm") == 392
        assert extract_gpu_clearance("VGA clearance 380 mm") == 380
        assert extract_gpu_clearance("Mid Tower") is None

    def test_form_factor(self):
        assert extract_form_factor("ASUS TUF B650-PLUS ATX Motherboard") == "ATX"
        assert extract_form_factor("MSI PRO B760M-A Micro-ATX") == "Micro-ATX"
        assert extract_form_factor("Gigabyte B650M DS3H") == "Micro-ATX"
        assert extract_form_factor("ASRock B650I Lightning Mini-ITX") == "Mini-ITX"
        assert extract_form_factor("ASUS ROG Zenith E-ATX") == "E-ATX"
        assert extract_form_factor("MSI B650 Tomahawk") is None

    def test_supported_form_factors(self):
        assert extract_supported_form_factors("NZXT H5 Flow ATX Mid Tower") == ["ATX", "Micro-ATX", "Mini-ITX"]
        assert extract_supported_form_factors("Cooler Master NR200 Mini-ITX Case") == ["Mini-ITX"]
        assert extract_supported_form_factors("Mid Tower, supports mATX and E-ATX") == [
            "E-ATX", "ATX", "Micro-ATX", "Mini-ITX",
        ]
        assert extract_supported_form_factors("Mid Tower") is None

    def test_max_memory(self):
        assert extract_max_memory("AM5 DDR5 up to 192GB") == "192GB"
        assert extract_max_memory("Max 128 GB DDR4") == "128GB"
        assert extract_max_memory("up to 5.4 GHz") is None

    def test_sockets(self):
        assert extract_sockets("Air Cooler for Intel LGA1700/1200 and AMD AM5/AM4") == ["LGA1700", "AM5", "AM4"]
        assert extract_sockets("Tower Cooler") is None


class TestExtractModel:
    @pytest.mark.parametrize("title,expected", [
        ("Intel Core i7-13700K Desktop Processor", "i7-13700K"),
        ("AMD Ryzen 7 7800X3D 8-Core Processor", "Ryzen 7 7800X3D"),
        ("MSI GeForce RTX 4070 Ti Super Ventus", "RTX 4070 Ti Super"),
        ("Corsair RM850x 850 Watt Power Supply", "RM850x"),
    ])
    def test_models(self, title, expected):
        assert extract_model(title) == expected

    def test_skips_spec_tokens(self):
        assert extract_model("Generic DDR5 memory") is None


class TestCpuVendor:
    def test_chipset_tokens(self):
        assert cpu_vendor("ASUS ROG Strix B650E-F Gaming") == "AMD"
        assert cpu_vendor("Gigabyte Z790 Aorus Elite") == "Intel"

    def test_socket_tokens(self):
        assert cpu_vendor("Board with LGA1700 socket") == "Intel"
        assert cpu_vendor("AM5 board") == "AMD"

    def test_product_lines(self):
        assert cpu_vendor("Ryzen 7 7800X3D") == "AMD"
        assert cpu_vendor("Core i5-12400F") == "Intel"

    def test_unknown(self):
        assert cpu_vendor("Generic ATX Board") is None
        assert cpu_vendor(None) is None


class TestParseTitle:
    def test_cpu(self):
        spec = parse_title("Intel Core i7-13700K Desktop Processor 16 cores up to 5.4 GHz LGA1700")
        assert spec.category == "CPU"
        assert spec.brand == "Intel"
        assert spec.model == "i7-13700K"
        assert spec.specifications == {"clockSpeed": "5.4 GHz", "cores": 16, "socket": "LGA1700"}

    def test_psu(self):
        spec = parse_title("Corsair RM850x 850 Watt 80+ Gold Fully Modular Power Supply")
        assert spec.category == "PSU"
        assert spec.brand == "Corsair"
        assert spec.model == "RM850x"
        assert spec.specifications["wattage"] == 850

    def test_ram(self):
        spec = parse_title("Corsair Vengeance 32GB (2x16GB) DDR5 6000MHz Desktop Memory")
        assert spec.category == "RAM"
        assert spec.specifications["memory"] == "32GB"
        assert spec.specifications["memoryType"] == "DDR5"

    def test_motherboard(self):
        spec = parse_title("MSI B650 Gaming Plus WiFi AM5 DDR5 ATX Motherboard")
        assert spec.category == "Motherboard"
        assert spec.brand == "MSI"
        assert spec.specifications["socket"] == "AM5"
        assert spec.specifications["chipset"] == "B650"
        assert spec.specifications["formFactor"] == "ATX"
        assert spec.specifications["memoryType"] == "DDR5"

    def test_gpu_memory_without_type(self):
        spec = parse_title("ZOTAC Gaming GeForce RTX 4070 Twin Edge 12GB GDDR6X Graphics Card")
        assert spec.category == "GPU"
        assert spec.brand == "Zotac"
        assert spec.model == "RTX 4070"
        assert spec.specifications["memory"] == "12GB"
        assert "memoryType" not in spec.specifications

    def test_board_partner_beats_chip_vendor(self):
        spec = parse_title("Sapphire Pulse AMD Radeon RX 7800 XT 16GB Graphics Card")
        assert spec.brand == "Sapphire"
        assert spec.model == "RX 7800 XT"

    def test_cooler_rating(self):
        spec = parse_title("DeepCool AK620 CPU Air Cooler 260W TDP")
        assert spec.category == "Cooling"
        assert spec.specifications["tdpRating"] == 260
        assert "tdp" not in spec.specifications

    def test_case_clearance(self):
        spec = parse_title("Lian Li Lancool 216 Mid Tower Case GPU up to 392mm")
        assert spec.category == "Case"
        assert spec.specifications["maxGpuLength"] == 392

    def test_case_form_factors(self):
        spec = parse_title("Corsair 4000D Airflow ATX Mid Tower Cabinet")
        assert spec.category == "Case"
        assert spec.specifications["motherboardSupport"] == ["ATX", "Micro-ATX", "Mini-ITX"]

    def test_cooler_sockets(self):
        spec = parse_title("DeepCool AK620 CPU Air Cooler for LGA1700 and AM5")
        assert spec.category == "Cooling"
        assert spec.specifications["socket"] == "LGA1700/AM5"

    def test_detected_category_beats_hint(self):
        spec = parse_title("Corsair RM850x 850 Watt Power Supply", category_hint="GPU")
        assert spec.category == "PSU"

    def test_hint_used_when_undetectable(self):
        spec = parse_title("Something generic widget", category_hint="Storage")
        assert spec.category == "Storage"
        assert spec.brand == "Something"
        assert spec.model == "Something generic widget"

    def test_fallback_other(self):
        assert parse_title("Random widget").category == "Other"

    def test_empty_title(self):
        spec = parse_title("")
        assert spec.category == "Other"
        assert spec.brand == ""
        assert spec.specifications == {}
