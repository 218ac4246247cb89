SCHEMA_SQL = r"""
-- Staff accounts (admin / subadmin)
CREATE TABLE IF NOT EXISTS staff_users (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  email TEXT NOT NULL UNIQUE,
  password_hash TEXT NOT NULL,
  role TEXT NOT NULL DEFAULT 'subadmin',     -- admin / subadmin
  created_at TEXT NOT NULL
);

-- Storefront customers (signed-up users and POS walk-ins)
CREATE TABLE IF NOT EXISTS customers (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT,
  email TEXT UNIQUE,
  phone TEXT,
  password_hash TEXT,                        -- NULL for POS-only customers
  is_blocked INTEGER NOT NULL DEFAULT 0,
  created_at TEXT NOT NULL,
  last_sign_in_at TEXT
);

-- Catalog hierarchy (fixed three levels)
CREATE TABLE IF NOT EXISTS categories (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  priority INTEGER NOT NULL DEFAULT 1,
  image_url TEXT,
  home_status INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS subcategories (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  category_id INTEGER NOT NULL,
  priority INTEGER NOT NULL DEFAULT 1,
  FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS sub_subcategories (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  category_id INTEGER NOT NULL,
  subcategory_id INTEGER NOT NULL,
  priority INTEGER NOT NULL DEFAULT 1,
  FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE CASCADE,
  FOREIGN KEY (subcategory_id) REFERENCES subcategories(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS brands (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name_en TEXT NOT NULL UNIQUE,
  alt_text TEXT,
  image_url TEXT,
  status INTEGER NOT NULL DEFAULT 1,
  created_at TEXT NOT NULL
);

-- Product attributes: type = taste / unit_type
CREATE TABLE IF NOT EXISTS attributes (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  type TEXT NOT NULL,
  name TEXT NOT NULL,
  UNIQUE (type, name)
);

CREATE TABLE IF NOT EXISTS products (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  sku TEXT NOT NULL UNIQUE,
  description TEXT,
  category_id INTEGER NOT NULL,
  subcategory_id INTEGER,
  sub_subcategory_id INTEGER,
  brand_id INTEGER,
  ingredients TEXT,
  taste_id INTEGER,
  pack_of TEXT,
  max_shelf_life TEXT,
  has_variation INTEGER NOT NULL DEFAULT 0,
  price REAL,                            -- used only when has_variation = 0
  stock INTEGER NOT NULL DEFAULT 0,      -- used only when has_variation = 0
  shipping_charge REAL NOT NULL DEFAULT 0,
  youtube_url TEXT,
  active INTEGER NOT NULL DEFAULT 1,
  created_at TEXT NOT NULL,
  FOREIGN KEY (category_id) REFERENCES categories(id),
  FOREIGN KEY (subcategory_id) REFERENCES subcategories(id),
  FOREIGN KEY (sub_subcategory_id) REFERENCES sub_subcategories(id),
  FOREIGN KEY (brand_id) REFERENCES brands(id),
  FOREIGN KEY (taste_id) REFERENCES attributes(id)
);

CREATE TABLE IF NOT EXISTS product_variations (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  product_id INTEGER NOT NULL,
  unit_type TEXT NOT NULL,
  price REAL NOT NULL,
  stock INTEGER NOT NULL DEFAULT 0 CHECK (stock >= 0),
  sku TEXT,
  FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS product_images (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  product_id INTEGER NOT NULL,
  image_url TEXT NOT NULL,               -- data URL (base64) or absolute URL
  FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE
);

-- Logged-in cart; anonymous carts live in the browser session
CREATE TABLE IF NOT EXISTS cart (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  product_id INTEGER NOT NULL,
  variation_id INTEGER,
  quantity INTEGER NOT NULL CHECK (quantity >= 1),
  created_at TEXT NOT NULL,
  FOREIGN KEY (user_id) REFERENCES customers(id) ON DELETE CASCADE,
  FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE,
  FOREIGN KEY (variation_id) REFERENCES product_variations(id) ON DELETE CASCADE
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_cart_line
  ON cart (user_id, product_id, IFNULL(variation_id, 0));

CREATE TABLE IF NOT EXISTS wishlists (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  product_id INTEGER NOT NULL,
  created_at TEXT NOT NULL,
  UNIQUE (user_id, product_id),
  FOREIGN KEY (user_id) REFERENCES customers(id) ON DELETE CASCADE,
  FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS product_reviews (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  product_id INTEGER NOT NULL,
  user_id INTEGER NOT NULL,
  rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
  comment TEXT,
  created_at TEXT NOT NULL,
  FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE,
  FOREIGN KEY (user_id) REFERENCES customers(id) ON DELETE CASCADE
);

-- Online orders (storefront checkout)
CREATE TABLE IF NOT EXISTS orders (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  reference_code TEXT NOT NULL UNIQUE,
  idempotency_key TEXT UNIQUE,
  user_id INTEGER,
  full_name TEXT NOT NULL,
  phone_number TEXT NOT NULL,
  alt_phone_number TEXT,
  house_number TEXT NOT NULL,
  street TEXT NOT NULL,
  city TEXT NOT NULL,
  state TEXT NOT NULL,
  pincode TEXT NOT NULL,
  payment_method TEXT NOT NULL,          -- razorpay / cod
  payment_status TEXT NOT NULL DEFAULT 'pending',   -- pending / paid
  payment_id TEXT,
  gateway_order_id TEXT,
  total_price REAL NOT NULL,
  shipping_cost REAL NOT NULL DEFAULT 0,
  tax_amount REAL NOT NULL DEFAULT 0,
  discount_amount REAL NOT NULL DEFAULT 0,
  grand_total REAL NOT NULL,
  cart_items TEXT NOT NULL,              -- JSON snapshot of the cart
  status TEXT NOT NULL DEFAULT 'pending',
  order_date TEXT NOT NULL,
  FOREIGN KEY (user_id) REFERENCES customers(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS order_items (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  order_id INTEGER NOT NULL,
  product_id INTEGER,
  product_name TEXT NOT NULL,
  variation_id INTEGER,
  variation_name TEXT,
  quantity INTEGER NOT NULL,
  price REAL NOT NULL,
  shipping_charge REAL NOT NULL DEFAULT 0,
  image TEXT,
  FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE CASCADE,
  FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE SET NULL
);

-- Point-of-sale orders
CREATE TABLE IF NOT EXISTS pos_orders (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  customer_id INTEGER,
  full_name TEXT NOT NULL,
  phone_number TEXT,
  payment_method TEXT NOT NULL,          -- cash / card / upi
  subtotal REAL NOT NULL,
  tax_amount REAL NOT NULL DEFAULT 0,
  discount_amount REAL NOT NULL DEFAULT 0,
  grand_total REAL NOT NULL,
  order_items TEXT NOT NULL,             -- JSON snapshot of the POS cart
  created_at TEXT NOT NULL,
  FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE SET NULL
);

-- Homepage content
CREATE TABLE IF NOT EXISTS banners (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  title TEXT NOT NULL,
  bg_color TEXT NOT NULL DEFAULT '#F97316',
  text_color TEXT NOT NULL DEFAULT '#FFFFFF',
  active INTEGER NOT NULL DEFAULT 0,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS hero_sections (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  images TEXT NOT NULL,                  -- JSON list of image URLs
  active INTEGER NOT NULL DEFAULT 0,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notification_banners (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  image_url TEXT NOT NULL,
  active INTEGER NOT NULL DEFAULT 0,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS instagram_links (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  url TEXT NOT NULL,
  published INTEGER NOT NULL DEFAULT 1,
  created_at TEXT NOT NULL,
  updated_at TEXT
);

CREATE TABLE IF NOT EXISTS offers (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  title TEXT NOT NULL,
  discount_type TEXT NOT NULL,           -- percentage / flat
  discount_value REAL NOT NULL,
  category_id INTEGER,                   -- NULL = all products
  subcategory_id INTEGER,
  sub_subcategory_id INTEGER,
  start_date TEXT NOT NULL,              -- ISO date
  end_date TEXT NOT NULL,
  is_active INTEGER NOT NULL DEFAULT 1,
  FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE CASCADE,
  FOREIGN KEY (subcategory_id) REFERENCES subcategories(id) ON DELETE CASCADE,
  FOREIGN KEY (sub_subcategory_id) REFERENCES sub_subcategories(id) ON DELETE CASCADE
);
"""
