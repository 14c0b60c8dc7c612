"""Nova Defense simulation core — towers, cities, missiles, explosions."""
